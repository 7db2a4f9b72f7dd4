"""
Database Schema - DDL Generation and Deployment.

Generates the PostGIS DDL for the AtoN store as psycopg.sql.Composed
statements (schema name always composed as an Identifier) and deploys them
in one transaction.

Tables:
    aton_records            One row per AtoN (business key id_code)
    aton_groupings          Aggregations/associations, unique per (class, category, peers)
    aton_grouping_peers     Peer membership, used to find a record's groupings
    datasets                Dataset definitions
    dataset_contents        Current content, one row per dataset
    dataset_content_logs    Append-only content log, unique (dataset_uuid, sequence_no)
    subscription_requests   Subscriptions, unique client_mrn, GIST on subscription_geometry

Exports:
    SchemaGenerator: Build the composed DDL statements
    deploy_schema: Execute the DDL against a connection string
"""

from typing import List

import psycopg
from psycopg import sql

from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SCHEMA, "schema")


TABLE_NAMES = [
    "aton_records",
    "aton_groupings",
    "aton_grouping_peers",
    "datasets",
    "dataset_contents",
    "dataset_content_logs",
    "subscription_requests",
]


class SchemaGenerator:
    """Composes CREATE statements for one application schema."""

    def __init__(self, schema_name: str = "aton"):
        self.schema_name = schema_name

    def _table(self, name: str) -> sql.Composed:
        return sql.SQL("{}.{}").format(sql.Identifier(self.schema_name), sql.Identifier(name))

    def generate_extension_statements(self) -> List[sql.Composed]:
        return [
            sql.SQL("CREATE EXTENSION IF NOT EXISTS postgis"),
            sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(self.schema_name)),
        ]

    def generate_table_statements(self) -> List[sql.Composed]:
        t = self._table
        return [
            sql.SQL("""
                CREATE TABLE IF NOT EXISTS {} (
                    id_code TEXT PRIMARY KEY,
                    aton_number TEXT,
                    kind TEXT NOT NULL,
                    geometry geometry(Geometry, 4326),
                    date_start DATE,
                    date_end DATE,
                    textual_description TEXT,
                    informations JSONB NOT NULL DEFAULT '[]'::jsonb,
                    payload JSONB NOT NULL,
                    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
                )
            """).format(t("aton_records")),

            sql.SQL("""
                CREATE TABLE IF NOT EXISTS {} (
                    id BIGSERIAL PRIMARY KEY,
                    grouping_class TEXT NOT NULL,
                    category TEXT NOT NULL,
                    peers TEXT[] NOT NULL,
                    UNIQUE (grouping_class, category, peers)
                )
            """).format(t("aton_groupings")),

            sql.SQL("""
                CREATE TABLE IF NOT EXISTS {} (
                    grouping_id BIGINT NOT NULL REFERENCES {} (id) ON DELETE CASCADE,
                    id_code TEXT NOT NULL,
                    PRIMARY KEY (grouping_id, id_code)
                )
            """).format(t("aton_grouping_peers"), t("aton_groupings")),

            sql.SQL("""
                CREATE TABLE IF NOT EXISTS {} (
                    uuid UUID PRIMARY KEY,
                    title TEXT,
                    file_identifier TEXT,
                    geometry geometry(Geometry, 4326),
                    created_at TIMESTAMPTZ NOT NULL,
                    last_updated_at TIMESTAMPTZ NOT NULL,
                    cancelled BOOLEAN NOT NULL DEFAULT false
                )
            """).format(t("datasets")),

            sql.SQL("""
                CREATE TABLE IF NOT EXISTS {} (
                    dataset_uuid UUID PRIMARY KEY,
                    sequence_no INTEGER NOT NULL,
                    generated_at TIMESTAMPTZ NOT NULL,
                    content TEXT,
                    content_length INTEGER NOT NULL DEFAULT 0,
                    delta TEXT,
                    delta_length INTEGER NOT NULL DEFAULT 0
                )
            """).format(t("dataset_contents")),

            # No foreign key to datasets: log entries outlive their dataset
            sql.SQL("""
                CREATE TABLE IF NOT EXISTS {} (
                    id BIGSERIAL PRIMARY KEY,
                    dataset_uuid UUID NOT NULL,
                    sequence_no INTEGER NOT NULL CHECK (sequence_no >= 0),
                    operation TEXT NOT NULL,
                    generated_at TIMESTAMPTZ NOT NULL,
                    content TEXT,
                    content_length INTEGER NOT NULL DEFAULT 0,
                    delta TEXT,
                    delta_length INTEGER NOT NULL DEFAULT 0,
                    geometry geometry(Geometry, 4326),
                    UNIQUE (dataset_uuid, sequence_no)
                )
            """).format(t("dataset_content_logs")),

            sql.SQL("""
                CREATE TABLE IF NOT EXISTS {} (
                    uuid UUID PRIMARY KEY,
                    client_mrn TEXT NOT NULL UNIQUE,
                    container_type TEXT NOT NULL,
                    data_product_type TEXT,
                    product_version TEXT,
                    data_reference UUID,
                    geometry geometry(Geometry, 4326),
                    unlocode TEXT,
                    subscription_period_start TIMESTAMPTZ,
                    subscription_period_end TIMESTAMPTZ,
                    created_at TIMESTAMPTZ NOT NULL,
                    subscription_geometry geometry(Geometry, 4326)
                )
            """).format(t("subscription_requests")),
        ]

    def generate_index_statements(self) -> List[sql.Composed]:
        schema = sql.Identifier(self.schema_name)
        specs = [
            ("idx_aton_records_geometry", "aton_records", "GIST (geometry)"),
            ("idx_aton_grouping_peers_id_code", "aton_grouping_peers", "(id_code)"),
            ("idx_datasets_geometry", "datasets", "GIST (geometry)"),
            ("idx_dataset_content_logs_generated_at", "dataset_content_logs", "(dataset_uuid, generated_at)"),
            ("idx_subscription_requests_geometry", "subscription_requests", "GIST (subscription_geometry)"),
        ]
        return [
            sql.SQL("CREATE INDEX IF NOT EXISTS {} ON {}.{} " + using).format(
                sql.Identifier(name), schema, sql.Identifier(table)
            )
            for name, table, using in specs
        ]

    def generate_composed_statements(self) -> List[sql.Composed]:
        return (
            self.generate_extension_statements()
            + self.generate_table_statements()
            + self.generate_index_statements()
        )


def deploy_schema(connection_string: str, schema_name: str = "aton") -> int:
    """
    Deploy all tables and indexes in one transaction.

    Returns:
        Number of statements executed

    Raises:
        psycopg.Error: deployment failed; nothing is committed
    """
    statements = SchemaGenerator(schema_name).generate_composed_statements()
    logger.info(f"🏗️ Deploying schema {schema_name} ({len(statements)} statements)")

    with psycopg.connect(connection_string) as conn:
        with conn.cursor() as cursor:
            for statement in statements:
                cursor.execute(statement)
        conn.commit()

    logger.info(f"✅ Schema {schema_name} deployed: {', '.join(TABLE_NAMES)}")
    return len(statements)
