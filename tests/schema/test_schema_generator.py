"""
SQL DDL generation tests - SchemaGenerator.

Statements are inspected structurally (psycopg.sql objects), no database
connection needed.
"""

import pytest
from psycopg import sql

from infrastructure.schema import TABLE_NAMES, SchemaGenerator


class TestSchemaGenerator:

    @pytest.fixture
    def generator(self):
        return SchemaGenerator("aton_test")

    def test_one_statement_per_table(self, generator):
        assert len(generator.generate_table_statements()) == len(TABLE_NAMES)

    def test_extensions_first(self, generator):
        statements = generator.generate_composed_statements()
        assert statements[:2] == generator.generate_extension_statements()

    def test_schema_name_is_identifier(self, generator):
        create_schema = generator.generate_extension_statements()[1]
        assert sql.Identifier("aton_test") in create_schema.seq

    def test_every_table_statement_targets_schema(self, generator):
        for statement in generator.generate_table_statements():
            assert sql.Identifier("aton_test") in _identifiers(statement)

    def test_indexes(self, generator):
        indexes = generator.generate_index_statements()
        names = {i for statement in indexes for i in _identifiers(statement)}
        assert sql.Identifier("idx_subscription_requests_geometry") in names

    def test_total(self, generator):
        statements = generator.generate_composed_statements()
        assert len(statements) == 2 + len(TABLE_NAMES) + len(generator.generate_index_statements())


def _identifiers(composable):
    """Flatten a Composed into its Identifier parts."""
    if isinstance(composable, sql.Identifier):
        return [composable]
    if isinstance(composable, sql.Composed):
        found = []
        for part in composable.seq:
            found.extend(_identifiers(part))
        return found
    return []
