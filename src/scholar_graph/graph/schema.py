"""Graph schema migration.

Run once before serving traffic. Every statement is `IF NOT EXISTS`, so the
migration is a no-op on an already-migrated database and safe to race from
several process instances.
"""

from __future__ import annotations

import logging
import re

from neo4j.exceptions import ClientError

from scholar_graph.errors import StoreError

logger = logging.getLogger(__name__)

# Neo4j can report a concurrent creation of the same rule even with IF NOT EXISTS.
_ALREADY_EXISTS = {
    "Neo.ClientError.Schema.EquivalentSchemaRuleAlreadyExists",
    "Neo.ClientError.Schema.IndexAlreadyExists",
    "Neo.ClientError.Schema.ConstraintAlreadyExists",
}

_IDENTIFIER = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")

CONSTRAINTS = [
    "CREATE CONSTRAINT knowledge_id IF NOT EXISTS FOR (k:Knowledge) REQUIRE k.id IS UNIQUE",
    "CREATE CONSTRAINT author_id IF NOT EXISTS FOR (a:Author) REQUIRE a.id IS UNIQUE",
    # Author identity is the exact name string; the constraint also backs MERGE lookups.
    "CREATE CONSTRAINT author_name IF NOT EXISTS FOR (a:Author) REQUIRE a.name IS UNIQUE",
]


def fulltext_index_statement(index_name: str) -> str:
    # Index names cannot be parameterized.
    if not _IDENTIFIER.match(index_name):
        raise StoreError(f"invalid full-text index name: {index_name!r}")
    return f"""
    CREATE FULLTEXT INDEX {index_name} IF NOT EXISTS
    FOR (k:Knowledge)
    ON EACH [k.title, k.summary, k.authorNames]
    OPTIONS {{
      indexConfig: {{
        `fulltext.analyzer`: 'standard-folding'
      }}
    }}
    """


def schema_statements(index_name: str) -> list[str]:
    return [*CONSTRAINTS, fulltext_index_statement(index_name)]


def _run_tx(tx, statement: str) -> None:
    tx.run(statement).consume()


def apply_schema(session, index_name: str) -> int:
    """Apply every schema statement in its own write transaction.

    Returns the number of statements applied.
    """
    stmts = schema_statements(index_name)
    for q in stmts:
        try:
            session.execute_write(_run_tx, q)
        except ClientError as e:
            if e.code not in _ALREADY_EXISTS:
                raise
            logger.info("Schema rule already present (%s)", e.code)
    return len(stmts)
