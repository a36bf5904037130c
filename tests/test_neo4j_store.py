from __future__ import annotations

import pytest
from neo4j.exceptions import ClientError, ServiceUnavailable

from scholar_graph.errors import StoreError, ValidationError
from scholar_graph.graph.neo4j_store import SEARCH_KNOWLEDGE, Neo4jConfig, Neo4jKnowledgeStore
from scholar_graph.models import KnowledgeRecord
from scholar_graph.search.engine import SearchEngine


def _record(rid: str, *, authors=("Ivanov, A.",), year=2019, title="", summary="", file=None) -> KnowledgeRecord:
    return KnowledgeRecord(
        id=rid,
        authors=list(authors),
        creation_date=year,
        issuer_id="1234-5678",
        summary=summary,
        title=title,
        type="Article",
        file=file,
    )


def test_upsert_then_get_round_trips_fields_and_authors(store):
    rec = _record("k1", authors=("Ivanov, A.", "Petrov, B."), title="Neural Networks in Practice")
    store.upsert(rec)

    got = store.get("k1")
    assert got is not None
    assert (got.id, got.creation_date, got.issuer_id, got.summary, got.title, got.type) == (
        rec.id,
        rec.creation_date,
        rec.issuer_id,
        rec.summary,
        rec.title,
        rec.type,
    )
    assert sorted(got.authors) == sorted(rec.authors)
    assert got.file is None


def test_upsert_writes_author_names_for_the_fulltext_index(store, graph):
    store.upsert(_record("k1", authors=("Ivanov, A.", "Petrov, B.")))
    assert graph.knowledge["k1"]["authorNames"] == "Ivanov, A. Petrov, B."


def test_record_without_authors_is_persisted(store, graph):
    store.upsert(_record("k1", authors=()))
    assert store.get("k1").authors == []
    assert graph.authors == {}


def test_same_author_name_collapses_to_one_node(store, graph):
    store.upsert(_record("k1", authors=("Ivanov, A.",)))
    store.upsert(_record("k2", authors=("Ivanov, A.", "Petrov, B.")))

    assert set(graph.authors) == {"Ivanov, A.", "Petrov, B."}
    author_id = graph.authors["Ivanov, A."]
    assert {r.id for r in store.list_by_author(author_id)} == {"k1", "k2"}


def test_resubmission_updates_scalars_but_never_the_file(store):
    store.upsert(_record("k1", title="old", file=b"v1"))
    store.upsert(_record("k1", title="new", file=b"v2"))

    assert store.get("k1").title == "new"
    assert store.get_file("k1") == b"v1"


def test_get_unknown_id_returns_none(store):
    assert store.get("missing") is None


def test_get_file(store):
    store.upsert(_record("with", file=b"%PDF"))
    store.upsert(_record("without"))

    assert store.get_file("with") == b"%PDF"
    assert store.get_file("without") is None
    assert store.get_file("missing") is None


def test_listing_is_year_descending_and_pages_are_disjoint(store):
    for i, year in enumerate([2015, 2021, 0, 2019, 2021, 2010, 2018]):
        store.upsert(_record(f"k{i}", year=year))

    first = store.list_knowledge(page=0, size=3)
    second = store.list_knowledge(page=1, size=3)
    third = store.list_knowledge(page=2, size=3)

    ids = [r.id for r in first + second + third]
    assert len(ids) == len(set(ids)) == 7
    years = [r.creation_date for r in first + second + third]
    assert years == sorted(years, reverse=True)
    assert store.list_knowledge(page=3, size=3) == []


@pytest.mark.parametrize("page,size", [(-1, 10), (0, 0), (0, 101)])
def test_invalid_paging_is_rejected(store, page, size):
    with pytest.raises(ValidationError):
        store.list_knowledge(page=page, size=size)


def test_list_by_author_returns_all_coauthor_names(store, graph):
    store.upsert(_record("k1", authors=("Ivanov, A.", "Petrov, B."), year=2020))
    store.upsert(_record("k2", authors=("Petrov, B.",), year=2021))
    store.upsert(_record("k3", authors=("Sidorov, C.",), year=2022))

    rows = store.list_by_author(graph.authors["Petrov, B."])
    assert [r.id for r in rows] == ["k2", "k1"]
    assert sorted(rows[1].authors) == ["Ivanov, A.", "Petrov, B."]
    assert store.list_by_author("unknown-author") == []


def test_find_authors_by_name_fragment(store):
    store.upsert(_record("k1", authors=("Ivanov, A.", "Petrov, B.")))

    assert [a.name for a in store.find_authors("ivan")] == ["Ivanov, A."]
    assert [a.name for a in store.find_authors(None)] == ["Ivanov, A.", "Petrov, B."]


def test_store_failure_is_typed_and_session_released(store, graph):
    graph.fail_with = ServiceUnavailable("neo4j is down")

    with pytest.raises(StoreError):
        store.get("k1")
    with pytest.raises(StoreError):
        store.upsert(_record("k1"))

    assert graph.sessions_opened == graph.sessions_closed == 2


def test_ensure_schema_is_idempotent(store, graph):
    store.ensure_schema()
    created = set(graph.schema)
    store.ensure_schema()

    assert graph.schema == created
    fulltext = [s for s in created if "FULLTEXT INDEX knowledge_search_index" in s]
    assert len(fulltext) == 1
    assert "standard-folding" in fulltext[0]
    assert "ON EACH [k.title, k.summary, k.authorNames]" in fulltext[0]


class _RuleAlreadyExists(ClientError):
    code = "Neo.ClientError.Schema.EquivalentSchemaRuleAlreadyExists"


class _SyntaxError(ClientError):
    code = "Neo.ClientError.Statement.SyntaxError"


def test_ensure_schema_tolerates_rule_created_by_another_instance(store, graph):
    graph.fail_on["author_name"] = _RuleAlreadyExists("equivalent constraint already exists")

    store.ensure_schema()

    assert not any("author_name" in s for s in graph.schema)
    assert any("FULLTEXT INDEX knowledge_search_index" in s for s in graph.schema)
    assert graph.sessions_opened == graph.sessions_closed == 1


def test_ensure_schema_surfaces_other_client_errors_as_store_error(store, graph):
    graph.fail_on["author_name"] = _SyntaxError("invalid input")

    with pytest.raises(StoreError):
        store.ensure_schema()

    assert not any("FULLTEXT INDEX" in s for s in graph.schema)
    assert graph.sessions_opened == graph.sessions_closed == 1


def test_invalid_index_name_is_a_store_error(graph):
    cfg = Neo4jConfig(uri="bolt://fake:7687", user="neo4j", password="x", fulltext_index="idx; DROP")
    store = Neo4jKnowledgeStore(cfg, driver=graph)

    with pytest.raises(StoreError):
        store.ensure_schema()
    assert graph.schema == set()


# --- search & recommendations ---


def test_exact_title_match_ranks_above_fuzzy_only_match(store):
    store.upsert(_record("fuzzy", title="Neural network theory", year=2022))
    store.upsert(_record("exact", title="Neural Networks in Practice", year=2001))
    store.upsert(_record("other", title="Organic chemistry", year=2023))

    results = SearchEngine(store).search("neural networks")
    assert [r.id for r in results] == ["exact", "fuzzy"]


def test_search_matches_author_names(store):
    store.upsert(_record("k1", authors=("Ivanov, A.",), title="Graphs"))
    store.upsert(_record("k2", authors=("Petrov, B.",), title="Graphs"))

    assert [r.id for r in SearchEngine(store).search("ivanov")] == ["k1"]


def test_search_ignores_diacritics_on_both_sides(store):
    store.upsert(_record("k1", title="Über Müller-Lyer illusions"))
    store.upsert(_record("k2", title="Organic chemistry"))

    engine = SearchEngine(store)
    assert [r.id for r in engine.search("muller")] == ["k1"]
    assert [r.id for r in engine.search("Müllér uber")] == ["k1"]


def test_blank_search_falls_back_to_listing(store, graph):
    store.upsert(_record("k1", year=2000))
    store.upsert(_record("k2", year=2020))

    results = SearchEngine(store).search("   ")
    assert [r.id for r in results] == ["k2", "k1"]
    assert SEARCH_KNOWLEDGE not in graph.statements


def test_recommendation_scenario_shared_author(store):
    store.upsert(_record("first", authors=("Ivanov, A.", "Petrov, B.")))
    store.upsert(_record("second", authors=("Ivanov, A.",)))

    recs = SearchEngine(store).recommend("second")
    assert [(r.id, r.shared_authors) for r in recs] == [("first", 1)]
    assert sorted(recs[0].authors) == ["Ivanov, A.", "Petrov, B."]


def test_recommendations_rank_by_shared_author_count_and_exclude_source(store):
    store.upsert(_record("src", authors=("A", "B", "C")))
    store.upsert(_record("two", authors=("A", "B")))
    store.upsert(_record("one", authors=("C", "Z")))
    store.upsert(_record("none", authors=("Z",)))

    recs = SearchEngine(store).recommend("src", limit=5)
    assert [(r.id, r.shared_authors) for r in recs] == [("two", 2), ("one", 1)]


def test_recommendation_counts_are_symmetric(store):
    store.upsert(_record("a", authors=("X", "Y", "Q")))
    store.upsert(_record("b", authors=("X", "Y", "R")))

    engine = SearchEngine(store)
    a_to_b = {r.id: r.shared_authors for r in engine.recommend("a")}["b"]
    b_to_a = {r.id: r.shared_authors for r in engine.recommend("b")}["a"]
    assert a_to_b == b_to_a == 2


def test_recommendation_limit(store):
    store.upsert(_record("src", authors=("A",)))
    for i in range(4):
        store.upsert(_record(f"r{i}", authors=("A",)))

    assert len(SearchEngine(store).recommend("src", limit=2)) == 2
    assert SearchEngine(store).recommend("missing") == []
    with pytest.raises(ValidationError):
        SearchEngine(store).recommend("src", limit=0)
