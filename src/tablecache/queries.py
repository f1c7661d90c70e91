"""SQL statements for one cache table.

``CacheQueries`` renders every statement the SQL row store executes,
once, for a given dialect and table. Parameters are always named:
``id``, ``value``, ``now``, ``expires_at_time``,
``sliding_expiration_seconds``, ``absolute_expiration`` (and ``schema`` /
``table`` for the introspection query).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tablecache.dialect import Dialect

ID = "id"
VALUE = "value"
EXPIRES_AT_TIME = "expires_at_time"
SLIDING_EXPIRATION_SECONDS = "sliding_expiration_seconds"
ABSOLUTE_EXPIRATION = "absolute_expiration"

COLUMNS = [ID, VALUE, EXPIRES_AT_TIME, SLIDING_EXPIRATION_SECONDS, ABSOLUTE_EXPIRATION]


@dataclass
class CacheQueries:
    """Rendered statements for ``schema.table`` in ``dialect``."""

    dialect: Dialect
    schema: str
    table: str

    qualified_table: str = field(init=False)
    touch: str = field(init=False)
    get_item: str = field(init=False)
    item_exists: str = field(init=False)
    upsert: str = field(init=False)
    delete: str = field(init=False)
    delete_expired: str = field(init=False)
    count_entries: str = field(init=False)
    table_info: str = field(init=False)
    create_table: list[str] = field(init=False)

    def __post_init__(self) -> None:
        d = self.dialect
        t = d.qualified_table(self.schema, self.table)
        now = d.param("now")
        key = d.param(ID)

        self.qualified_table = t

        # Renews sliding entries that are still live and not pinned at their
        # absolute ceiling; the new expiry is min(now + sliding, absolute).
        self.touch = (
            f"UPDATE {t} SET {EXPIRES_AT_TIME} = CASE "
            f"WHEN {d.seconds_between(ABSOLUTE_EXPIRATION, now)} <= {SLIDING_EXPIRATION_SECONDS} "
            f"THEN {ABSOLUTE_EXPIRATION} "
            f"ELSE {d.add_seconds(now, SLIDING_EXPIRATION_SECONDS)} "
            f"END "
            f"WHERE {ID} = {key} "
            f"AND {now} <= {EXPIRES_AT_TIME} "
            f"AND {SLIDING_EXPIRATION_SECONDS} IS NOT NULL "
            f"AND ({ABSOLUTE_EXPIRATION} IS NULL OR {ABSOLUTE_EXPIRATION} <> {EXPIRES_AT_TIME})"
        )

        self.get_item = (
            f"SELECT {', '.join(COLUMNS)} FROM {t} "
            f"WHERE {ID} = {key} AND {now} <= {EXPIRES_AT_TIME}"
        )

        self.item_exists = (
            f"SELECT 1 FROM {t} WHERE {ID} = {key} AND {now} <= {EXPIRES_AT_TIME}"
        )

        self.upsert = d.upsert(t, COLUMNS, [ID])

        self.delete = f"DELETE FROM {t} WHERE {ID} = {key}"

        self.delete_expired = f"DELETE FROM {t} WHERE {now} > {EXPIRES_AT_TIME}"

        self.count_entries = (
            f"SELECT "
            f"COALESCE(SUM(CASE WHEN {now} <= {EXPIRES_AT_TIME} THEN 1 ELSE 0 END), 0), "
            f"COALESCE(SUM(CASE WHEN {now} > {EXPIRES_AT_TIME} THEN 1 ELSE 0 END), 0) "
            f"FROM {t}"
        )

        self.table_info = d.table_exists_query(self.schema)

        index_name = f"ix_{self.table}_{EXPIRES_AT_TIME}"
        self.create_table = [
            (
                f"CREATE TABLE IF NOT EXISTS {t} ("
                f"{ID} {d.text_type()} NOT NULL PRIMARY KEY, "
                f"{VALUE} {d.binary_type()} NOT NULL, "
                f"{EXPIRES_AT_TIME} {d.timestamp_type()} NOT NULL, "
                f"{SLIDING_EXPIRATION_SECONDS} {d.float_type()} NULL, "
                f"{ABSOLUTE_EXPIRATION} {d.timestamp_type()} NULL)"
            ),
            d.create_index(self.schema, self.table, index_name, EXPIRES_AT_TIME),
        ]


__all__ = [
    "CacheQueries",
    "COLUMNS",
]
