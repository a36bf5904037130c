from .metadata import DSpaceMetadataExtractor, ExtractedMetadata, handle_from_url

__all__ = ["DSpaceMetadataExtractor", "ExtractedMetadata", "handle_from_url"]
