"""
PostgreSQL/PostGIS Repository Implementation - Direct Database Access

PostgreSQL-specific repositories built on the pure BaseRepository abstract
class. Every write that spans several tables runs in one explicit
transaction; a failure rolls everything back.

Architecture:
    BaseRepository (abstract)
        ↓
    PostgreSQLRepository (connection + cursor management)
        ↓
    PostgreSQLAtonRepository, PostgreSQLDatasetRepository,
    PostgreSQLDatasetContentRepository, PostgreSQLSubscriptionRepository

Key Features:
- psycopg3 with dict_row
- psycopg.sql composition for schema/table identifiers
- ST_Intersects (boundary inclusive) for all spatial predicates
- Unique (dataset_uuid, sequence_no) as the last guard on content versions

Exports:
    PostgreSQLRepository
    PostgreSQLAtonRepository
    PostgreSQLDatasetRepository
    PostgreSQLDatasetContentRepository
    PostgreSQLSubscriptionRepository
"""

import json
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID, uuid4

import psycopg
from psycopg import errors, sql
from psycopg.rows import dict_row
from shapely.geometry.base import BaseGeometry

from config import DatabaseConfig
from core.logic import detach_peer, diff_groupings, to_wkt
from core.models import (
    Aggregation,
    Association,
    AtonGrouping,
    AtonRecord,
    Dataset,
    DatasetContent,
    DatasetContentLog,
    SubscriptionRequest,
)
from exceptions import ContentConflictError, DatabaseError
from .base import BaseRepository
from .interface_repository import (
    IAtonRepository,
    IDatasetContentRepository,
    IDatasetRepository,
    ISubscriptionRepository,
)


# ============================================================================
# POSTGRESQL BASE REPOSITORY - Connection and common operations
# ============================================================================

class PostgreSQLRepository(BaseRepository):
    """
    PostgreSQL-specific repository base class with connection management.

    Thread Safety:
        Each operation opens its own connection, so instances are safe to
        share between threads.
    """

    def __init__(self, config: DatabaseConfig, connection_string: Optional[str] = None):
        super().__init__()
        self.config = config
        self.schema_name = config.app_schema
        self.conn_string = connection_string or config.connection_string

    @contextmanager
    def _get_connection(self):
        """
        Connection context. Autocommit is off: callers commit explicitly, and
        anything not committed is rolled back when the connection closes.

        Raises:
            DatabaseError: server unreachable or connection lost
        """
        conn = None
        try:
            conn = psycopg.connect(self.conn_string, row_factory=dict_row)
            yield conn
        except psycopg.OperationalError as e:
            self.logger.error(f"❌ PostgreSQL unavailable: {e}")
            if conn and not conn.closed:
                conn.rollback()
            raise DatabaseError(f"PostgreSQL unavailable: {e}") from e
        except psycopg.Error as e:
            self.logger.error(f"❌ PostgreSQL error: {type(e).__name__}: {e}")
            if conn:
                conn.rollback()
            raise
        finally:
            if conn:
                conn.close()

    @contextmanager
    def _get_cursor(self, conn=None):
        """
        Cursor context.

        With ``conn`` the caller owns the transaction; without it a fresh
        connection is opened and committed on success.
        """
        if conn:
            with conn.cursor() as cursor:
                yield cursor
        else:
            with self._get_connection() as conn:
                with conn.cursor() as cursor:
                    yield cursor
                    conn.commit()

    def _table(self, name: str) -> sql.Composed:
        return sql.SQL("{}.{}").format(sql.Identifier(self.schema_name), sql.Identifier(name))


def _wkt(geometry: Optional[BaseGeometry]) -> Optional[str]:
    return to_wkt(geometry) if geometry is not None else None


# ============================================================================
# ATON RECORDS
# ============================================================================

_GROUPING_CLASSES = {
    "aggregation": (Aggregation, "aggregation_type"),
    "association": (Association, "association_type"),
}


def _grouping_class_name(grouping: AtonGrouping) -> str:
    return "aggregation" if isinstance(grouping, Aggregation) else "association"


def _grouping_from_row(row: Dict[str, Any]) -> AtonGrouping:
    model, category_field = _GROUPING_CLASSES[row['grouping_class']]
    return model(peers=row['peers'], **{category_field: row['category']})


class PostgreSQLAtonRepository(PostgreSQLRepository, IAtonRepository):
    """
    AtoN records with their groupings.

    Groupings are rows of (class, category, sorted peers) with a join table
    for peer membership, so a record's groupings are found through its
    id_code and the aggregate is rebuilt on read.
    """

    _RECORD_COLUMNS = sql.SQL(
        "id_code, aton_number, ST_AsText(geometry) AS geometry, date_start, date_end, "
        "textual_description, informations, payload"
    )

    def _record_from_row(self, row: Dict[str, Any], groupings: List[AtonGrouping]) -> AtonRecord:
        return AtonRecord(
            id_code=row['id_code'],
            aton_number=row['aton_number'],
            geometry=row['geometry'],
            date_start=row['date_start'],
            date_end=row['date_end'],
            textual_description=row['textual_description'],
            informations=row['informations'] or [],
            payload=row['payload'],
            aggregations=[g for g in groupings if isinstance(g, Aggregation)],
            associations=[g for g in groupings if isinstance(g, Association)],
        )

    def _load_groupings(self, cursor, id_codes: List[str]) -> Dict[str, List[Tuple[int, AtonGrouping]]]:
        """(grouping id, grouping) pairs per member id_code."""
        result: Dict[str, List[Tuple[int, AtonGrouping]]] = {code: [] for code in id_codes}
        if not id_codes:
            return result
        cursor.execute(
            sql.SQL("""
                SELECT p.id_code AS member, g.id, g.grouping_class, g.category, g.peers
                FROM {} p JOIN {} g ON g.id = p.grouping_id
                WHERE p.id_code = ANY(%s)
            """).format(self._table("aton_grouping_peers"), self._table("aton_groupings")),
            (id_codes,)
        )
        for row in cursor.fetchall():
            result[row['member']].append((row['id'], _grouping_from_row(row)))
        return result

    def _insert_grouping(self, cursor, grouping: AtonGrouping) -> None:
        peers = sorted(grouping.peers)
        cursor.execute(
            sql.SQL("""
                INSERT INTO {} (grouping_class, category, peers)
                VALUES (%s, %s, %s)
                ON CONFLICT (grouping_class, category, peers) DO NOTHING
                RETURNING id
            """).format(self._table("aton_groupings")),
            (_grouping_class_name(grouping), grouping.category.value, peers)
        )
        row = cursor.fetchone()
        if row is None:
            return
        cursor.executemany(
            sql.SQL("INSERT INTO {} (grouping_id, id_code) VALUES (%s, %s)").format(
                self._table("aton_grouping_peers")
            ),
            [(row['id'], peer) for peer in peers]
        )

    def _delete_groupings(self, cursor, grouping_ids: List[int]) -> None:
        if grouping_ids:
            cursor.execute(
                sql.SQL("DELETE FROM {} WHERE id = ANY(%s)").format(self._table("aton_groupings")),
                (grouping_ids,)
            )

    def get(self, id_code: str) -> Optional[AtonRecord]:
        with self._error_context("aton retrieval", id_code):
            with self._get_cursor() as cursor:
                cursor.execute(
                    sql.SQL("SELECT {} FROM {} WHERE id_code = %s").format(
                        self._RECORD_COLUMNS, self._table("aton_records")
                    ),
                    (id_code,)
                )
                row = cursor.fetchone()
                if not row:
                    return None
                groupings = self._load_groupings(cursor, [id_code])[id_code]
                return self._record_from_row(row, [g for _, g in groupings])

    def upsert(self, record: AtonRecord) -> Tuple[AtonRecord, bool]:
        self._require(record, AtonRecord, "record")
        id_code = record.id_code
        with self._error_context("aton upsert", id_code):
            with self._get_connection() as conn:
                with self._get_cursor(conn) as cursor:
                    cursor.execute(
                        sql.SQL("""
                            INSERT INTO {} (
                                id_code, aton_number, kind, geometry, date_start, date_end,
                                textual_description, informations, payload, updated_at
                            ) VALUES (
                                %s, %s, %s, ST_GeomFromText(%s, 4326), %s, %s, %s, %s, %s, now()
                            )
                            ON CONFLICT (id_code) DO UPDATE SET
                                aton_number = EXCLUDED.aton_number,
                                kind = EXCLUDED.kind,
                                geometry = EXCLUDED.geometry,
                                date_start = EXCLUDED.date_start,
                                date_end = EXCLUDED.date_end,
                                textual_description = EXCLUDED.textual_description,
                                informations = EXCLUDED.informations,
                                payload = EXCLUDED.payload,
                                updated_at = now()
                            RETURNING (xmax = 0) AS inserted
                        """).format(self._table("aton_records")),
                        (
                            id_code,
                            record.aton_number,
                            record.kind.value,
                            record.geometry,
                            record.date_start,
                            record.date_end,
                            record.textual_description,
                            json.dumps(record.informations),
                            record.payload.model_dump_json(),
                        )
                    )
                    created = bool(cursor.fetchone()['inserted'])

                    existing = self._load_groupings(cursor, [id_code])[id_code]
                    ids_by_grouping = {g: gid for gid, g in existing}
                    declared = list(record.aggregations) + list(record.associations)
                    diff = diff_groupings(ids_by_grouping.keys(), declared)

                    self._delete_groupings(cursor, [ids_by_grouping[g] for g in diff.removed])
                    for grouping in sorted(diff.created, key=lambda g: g.key):
                        self._insert_grouping(cursor, grouping)

                conn.commit()

            self.logger.debug(
                f"💾 AtoN {'inserted' if created else 'updated'}: {id_code} "
                f"(+{len(diff.created)} / -{len(diff.removed)} groupings)"
            )
            return self.get(id_code), created

    def delete(self, id_code: str) -> Optional[AtonRecord]:
        with self._error_context("aton delete", id_code):
            with self._get_connection() as conn:
                with self._get_cursor(conn) as cursor:
                    cursor.execute(
                        sql.SQL("DELETE FROM {} WHERE id_code = %s RETURNING {}").format(
                            self._table("aton_records"), self._RECORD_COLUMNS
                        ),
                        (id_code,)
                    )
                    row = cursor.fetchone()
                    if not row:
                        return None

                    existing = self._load_groupings(cursor, [id_code])[id_code]
                    removed = self._record_from_row(row, [g for _, g in existing])

                    self._delete_groupings(cursor, [gid for gid, _ in existing])
                    for reduced in detach_peer([g for _, g in existing], id_code):
                        self._insert_grouping(cursor, reduced)

                conn.commit()

            self.logger.debug(f"🗑️ AtoN deleted: {id_code}")
            return removed

    def find_intersecting(self, geometry: Optional[BaseGeometry]) -> List[AtonRecord]:
        with self._error_context("aton spatial query"):
            with self._get_cursor() as cursor:
                if geometry is None:
                    cursor.execute(
                        sql.SQL("SELECT {} FROM {} ORDER BY id_code").format(
                            self._RECORD_COLUMNS, self._table("aton_records")
                        )
                    )
                else:
                    cursor.execute(
                        sql.SQL("""
                            SELECT {} FROM {}
                            WHERE ST_Intersects(geometry, ST_GeomFromText(%s, 4326))
                            ORDER BY id_code
                        """).format(self._RECORD_COLUMNS, self._table("aton_records")),
                        (_wkt(geometry),)
                    )
                rows = cursor.fetchall()
                groupings = self._load_groupings(cursor, [r['id_code'] for r in rows])
                return [
                    self._record_from_row(r, [g for _, g in groupings[r['id_code']]])
                    for r in rows
                ]

    def count(self) -> int:
        with self._get_cursor() as cursor:
            cursor.execute(
                sql.SQL("SELECT COUNT(*) AS n FROM {}").format(self._table("aton_records"))
            )
            return cursor.fetchone()['n']


# ============================================================================
# DATASETS
# ============================================================================

_DATASET_COLUMNS = sql.SQL(
    "uuid, title, file_identifier, ST_AsText(geometry) AS geometry, "
    "created_at, last_updated_at, cancelled"
)


def _save_dataset(cursor, table: sql.Composed, dataset: Dataset) -> Dataset:
    now = datetime.now(timezone.utc)
    cursor.execute(
        sql.SQL("""
            INSERT INTO {} (uuid, title, file_identifier, geometry, created_at, last_updated_at, cancelled)
            VALUES (%s, %s, %s, ST_GeomFromText(%s, 4326), %s, %s, %s)
            ON CONFLICT (uuid) DO UPDATE SET
                title = EXCLUDED.title,
                file_identifier = EXCLUDED.file_identifier,
                geometry = EXCLUDED.geometry,
                last_updated_at = EXCLUDED.last_updated_at,
                cancelled = EXCLUDED.cancelled
            RETURNING {}
        """).format(table, _DATASET_COLUMNS),
        (
            dataset.uuid or uuid4(),
            dataset.title,
            dataset.file_identifier,
            dataset.geometry,
            dataset.created_at or now,
            now,
            dataset.cancelled,
        )
    )
    return Dataset(**cursor.fetchone())


class PostgreSQLDatasetRepository(PostgreSQLRepository, IDatasetRepository):

    def get(self, uuid: UUID) -> Optional[Dataset]:
        with self._get_cursor() as cursor:
            cursor.execute(
                sql.SQL("SELECT {} FROM {} WHERE uuid = %s").format(
                    _DATASET_COLUMNS, self._table("datasets")
                ),
                (uuid,)
            )
            row = cursor.fetchone()
            return Dataset(**row) if row else None

    def save(self, dataset: Dataset) -> Dataset:
        self._require(dataset, Dataset, "dataset")
        with self._error_context("dataset save", str(dataset.uuid) if dataset.uuid else None):
            with self._get_cursor() as cursor:
                return _save_dataset(cursor, self._table("datasets"), dataset)

    def find_intersecting(self, geometry: Optional[BaseGeometry],
                          include_cancelled: bool = False) -> List[Dataset]:
        conditions = []
        params: List[Any] = []
        if not include_cancelled:
            conditions.append(sql.SQL("NOT cancelled"))
        if geometry is not None:
            # A dataset without geometry covers the whole world
            conditions.append(sql.SQL(
                "(geometry IS NULL OR ST_Intersects(geometry, ST_GeomFromText(%s, 4326)))"
            ))
            params.append(_wkt(geometry))
        where = sql.SQL(" WHERE ") + sql.SQL(" AND ").join(conditions) if conditions else sql.SQL("")

        with self._error_context("dataset spatial query"):
            with self._get_cursor() as cursor:
                cursor.execute(
                    sql.SQL("SELECT {} FROM {}{} ORDER BY uuid").format(
                        _DATASET_COLUMNS, self._table("datasets"), where
                    ),
                    params
                )
                return [Dataset(**row) for row in cursor.fetchall()]


# ============================================================================
# DATASET CONTENT
# ============================================================================

_LOG_COLUMNS = sql.SQL(
    "id, dataset_uuid, sequence_no, operation, generated_at, content, content_length, "
    "delta, delta_length, ST_AsText(geometry) AS geometry"
)


class PostgreSQLDatasetContentRepository(PostgreSQLRepository, IDatasetContentRepository):
    """Current content + append-only log, written together in one transaction."""

    def get_content(self, dataset_uuid: UUID) -> Optional[DatasetContent]:
        with self._get_cursor() as cursor:
            cursor.execute(
                sql.SQL("""
                    SELECT dataset_uuid, sequence_no, generated_at, content, content_length,
                           delta, delta_length
                    FROM {} WHERE dataset_uuid = %s
                """).format(self._table("dataset_contents")),
                (dataset_uuid,)
            )
            row = cursor.fetchone()
            return DatasetContent(**row) if row else None

    def _last_sequence_no(self, cursor, dataset_uuid: UUID) -> Optional[int]:
        cursor.execute(
            sql.SQL("SELECT MAX(sequence_no) AS last FROM {} WHERE dataset_uuid = %s").format(
                self._table("dataset_content_logs")
            ),
            (dataset_uuid,)
        )
        return cursor.fetchone()['last']

    def last_sequence_no(self, dataset_uuid: UUID) -> Optional[int]:
        with self._get_cursor() as cursor:
            return self._last_sequence_no(cursor, dataset_uuid)

    def append_version(self, log: DatasetContentLog,
                       content: Optional[DatasetContent] = None,
                       dataset: Optional[Dataset] = None,
                       remove_dataset: bool = False) -> DatasetContentLog:
        self._require(log, DatasetContentLog, "log")
        uuid = log.dataset_uuid
        with self._error_context("content version append", str(uuid)):
            with self._get_connection() as conn:
                with self._get_cursor(conn) as cursor:
                    last = self._last_sequence_no(cursor, uuid)
                    expected = 0 if last is None else last + 1
                    if log.sequence_no != expected:
                        raise ContentConflictError(
                            f"Dataset {uuid}: sequence {log.sequence_no} conflicts, expected {expected}"
                        )

                    try:
                        cursor.execute(
                            sql.SQL("""
                                INSERT INTO {} (
                                    dataset_uuid, sequence_no, operation, generated_at, content,
                                    content_length, delta, delta_length, geometry
                                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, ST_GeomFromText(%s, 4326))
                                RETURNING {}
                            """).format(self._table("dataset_content_logs"), _LOG_COLUMNS),
                            (
                                uuid, log.sequence_no, log.operation.value, log.generated_at,
                                log.content, log.content_length, log.delta, log.delta_length,
                                log.geometry,
                            )
                        )
                    except errors.UniqueViolation as e:
                        raise ContentConflictError(
                            f"Dataset {uuid}: sequence {log.sequence_no} already logged"
                        ) from e
                    entry = DatasetContentLog(**cursor.fetchone())

                    if content is not None:
                        cursor.execute(
                            sql.SQL("""
                                INSERT INTO {} (
                                    dataset_uuid, sequence_no, generated_at, content,
                                    content_length, delta, delta_length
                                ) VALUES (%s, %s, %s, %s, %s, %s, %s)
                                ON CONFLICT (dataset_uuid) DO UPDATE SET
                                    sequence_no = EXCLUDED.sequence_no,
                                    generated_at = EXCLUDED.generated_at,
                                    content = EXCLUDED.content,
                                    content_length = EXCLUDED.content_length,
                                    delta = EXCLUDED.delta,
                                    delta_length = EXCLUDED.delta_length
                            """).format(self._table("dataset_contents")),
                            (
                                uuid, content.sequence_no, content.generated_at, content.content,
                                content.content_length, content.delta, content.delta_length,
                            )
                        )
                    if dataset is not None:
                        _save_dataset(cursor, self._table("datasets"), dataset)
                    if remove_dataset:
                        cursor.execute(
                            sql.SQL("DELETE FROM {} WHERE dataset_uuid = %s").format(
                                self._table("dataset_contents")
                            ),
                            (uuid,)
                        )
                        cursor.execute(
                            sql.SQL("DELETE FROM {} WHERE uuid = %s").format(self._table("datasets")),
                            (uuid,)
                        )

                conn.commit()

            self.logger.debug(f"📝 Dataset {uuid} v{entry.sequence_no} logged ({entry.operation.value})")
            return entry

    def logs(self, dataset_uuid: UUID,
             start: Optional[datetime] = None,
             end: Optional[datetime] = None,
             newest_first: bool = False) -> List[DatasetContentLog]:
        conditions = [sql.SQL("dataset_uuid = %s")]
        params: List[Any] = [dataset_uuid]
        if start is not None:
            conditions.append(sql.SQL("generated_at >= %s"))
            params.append(start)
        if end is not None:
            conditions.append(sql.SQL("generated_at <= %s"))
            params.append(end)
        order = sql.SQL("DESC" if newest_first else "ASC")

        with self._get_cursor() as cursor:
            cursor.execute(
                sql.SQL("SELECT {} FROM {} WHERE {} ORDER BY sequence_no {}").format(
                    _LOG_COLUMNS, self._table("dataset_content_logs"),
                    sql.SQL(" AND ").join(conditions), order
                ),
                params
            )
            return [DatasetContentLog(**row) for row in cursor.fetchall()]

    def log_at(self, dataset_uuid: UUID, sequence_no: int) -> Optional[DatasetContentLog]:
        with self._get_cursor() as cursor:
            cursor.execute(
                sql.SQL("SELECT {} FROM {} WHERE dataset_uuid = %s AND sequence_no = %s").format(
                    _LOG_COLUMNS, self._table("dataset_content_logs")
                ),
                (dataset_uuid, sequence_no)
            )
            row = cursor.fetchone()
            return DatasetContentLog(**row) if row else None


# ============================================================================
# SUBSCRIPTIONS
# ============================================================================

_SUBSCRIPTION_COLUMNS = sql.SQL(
    "uuid, client_mrn, container_type, data_product_type, product_version, data_reference, "
    "ST_AsText(geometry) AS geometry, unlocode, subscription_period_start, "
    "subscription_period_end, created_at, ST_AsText(subscription_geometry) AS subscription_geometry"
)


class PostgreSQLSubscriptionRepository(PostgreSQLRepository, ISubscriptionRepository):

    def _select_one(self, cursor, column: str, value: Any) -> Optional[SubscriptionRequest]:
        cursor.execute(
            sql.SQL("SELECT {} FROM {} WHERE {} = %s").format(
                _SUBSCRIPTION_COLUMNS, self._table("subscription_requests"), sql.Identifier(column)
            ),
            (value,)
        )
        row = cursor.fetchone()
        return SubscriptionRequest(**row) if row else None

    def get(self, uuid: UUID) -> Optional[SubscriptionRequest]:
        with self._get_cursor() as cursor:
            return self._select_one(cursor, "uuid", uuid)

    def find_by_client(self, client_mrn: str) -> Optional[SubscriptionRequest]:
        with self._get_cursor() as cursor:
            return self._select_one(cursor, "client_mrn", client_mrn)

    def replace_for_client(self, subscription: SubscriptionRequest) -> Tuple[SubscriptionRequest, Optional[SubscriptionRequest]]:
        self._require(subscription, SubscriptionRequest, "subscription")
        with self._error_context("subscription replace", subscription.client_mrn):
            with self._get_connection() as conn:
                with self._get_cursor(conn) as cursor:
                    cursor.execute(
                        sql.SQL("DELETE FROM {} WHERE client_mrn = %s RETURNING {}").format(
                            self._table("subscription_requests"), _SUBSCRIPTION_COLUMNS
                        ),
                        (subscription.client_mrn,)
                    )
                    row = cursor.fetchone()
                    superseded = SubscriptionRequest(**row) if row else None

                    cursor.execute(
                        sql.SQL("""
                            INSERT INTO {} (
                                uuid, client_mrn, container_type, data_product_type, product_version,
                                data_reference, geometry, unlocode, subscription_period_start,
                                subscription_period_end, created_at, subscription_geometry
                            ) VALUES (
                                %s, %s, %s, %s, %s, %s, ST_GeomFromText(%s, 4326), %s, %s, %s, %s,
                                ST_GeomFromText(%s, 4326)
                            )
                            RETURNING {}
                        """).format(self._table("subscription_requests"), _SUBSCRIPTION_COLUMNS),
                        (
                            subscription.uuid or uuid4(),
                            subscription.client_mrn,
                            subscription.container_type.value,
                            subscription.data_product_type,
                            subscription.product_version,
                            subscription.data_reference,
                            subscription.geometry,
                            subscription.unlocode,
                            subscription.subscription_period_start,
                            subscription.subscription_period_end,
                            subscription.created_at or datetime.now(timezone.utc),
                            subscription.subscription_geometry,
                        )
                    )
                    saved = SubscriptionRequest(**cursor.fetchone())
                conn.commit()
            return saved, superseded

    def delete(self, uuid: UUID) -> Optional[SubscriptionRequest]:
        with self._error_context("subscription delete", str(uuid)):
            with self._get_cursor() as cursor:
                cursor.execute(
                    sql.SQL("DELETE FROM {} WHERE uuid = %s RETURNING {}").format(
                        self._table("subscription_requests"), _SUBSCRIPTION_COLUMNS
                    ),
                    (uuid,)
                )
                row = cursor.fetchone()
                return SubscriptionRequest(**row) if row else None

    def find_matching(self, geometry: Optional[BaseGeometry],
                      from_time: Optional[datetime],
                      to_time: Optional[datetime]) -> List[SubscriptionRequest]:
        conditions = [sql.SQL("TRUE")]
        params: List[Any] = []
        if geometry is not None:
            conditions.append(sql.SQL(
                "ST_Intersects(subscription_geometry, ST_GeomFromText(%s, 4326))"
            ))
            params.append(_wkt(geometry))
        if from_time is not None:
            conditions.append(sql.SQL(
                "(subscription_period_end IS NULL OR subscription_period_end >= %s)"
            ))
            params.append(from_time)
        if to_time is not None:
            conditions.append(sql.SQL(
                "(subscription_period_start IS NULL OR subscription_period_start <= %s)"
            ))
            params.append(to_time)

        with self._error_context("subscription match query"):
            with self._get_cursor() as cursor:
                cursor.execute(
                    sql.SQL("SELECT {} FROM {} WHERE {} ORDER BY uuid").format(
                        _SUBSCRIPTION_COLUMNS, self._table("subscription_requests"),
                        sql.SQL(" AND ").join(conditions)
                    ),
                    params
                )
                return [SubscriptionRequest(**row) for row in cursor.fetchall()]
