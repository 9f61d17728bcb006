"""Relational registry table, upserted by ticker.

SQLAlchemy Core only; PostgreSQL and SQLite are supported through their
``INSERT ... ON CONFLICT DO UPDATE`` dialect constructs.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    LargeBinary,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    select,
    update,
)
from sqlalchemy import engine as sa_engine
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from tickerregistry.errors import RegistryError, RegistryErrorCode
from tickerregistry.models.asset import Asset, AssetType
from tickerregistry.providers.polygon import SOURCE_TAG as POLYGON_SOURCE
from tickerregistry.providers.tiingo import SOURCE_TAG as TIINGO_SOURCE

log = logging.getLogger(__name__)

metadata = MetaData()

assets_table = Table(
    "assets",
    metadata,
    Column("ticker", String, primary_key=True),
    Column("asset_type", String, nullable=False, default=""),
    Column("cik", String, nullable=False, default=""),
    Column("composite_figi", String, nullable=False, default=""),
    Column("share_class_figi", String, nullable=False, default=""),
    Column("primary_exchange", String, nullable=False, default=""),
    Column("cusip", String, nullable=False, default=""),
    Column("isin", String, nullable=False, default=""),
    Column("active", Boolean, nullable=False, default=True),
    Column("name", String, nullable=False, default=""),
    Column("description", Text, nullable=False, default=""),
    Column("corporate_url", String, nullable=False, default=""),
    Column("sector", String, nullable=False, default=""),
    Column("industry", String, nullable=False, default=""),
    Column("headquarters_location", String, nullable=False, default=""),
    Column("logo_url", String, nullable=False, default=""),
    Column("icon", LargeBinary, nullable=False, default=b""),
    Column("similar_tickers", JSON, nullable=False, default=list),
    Column("new", Boolean, nullable=False, default=False),
    Column("updated", Boolean, nullable=False, default=False),
    Column("listed_utc", Date),
    Column("delisted_utc", Date),
    Column("last_updated_utc", DateTime(timezone=True)),
    Column("source", String, nullable=False, default=""),
    Column("polygon_detail_age", BigInteger, nullable=False, default=0),
)

# columns rewritten when a ticker already exists; "new" stays as reset
_UPDATE_COLUMNS: tuple[str, ...] = tuple(
    c.name for c in assets_table.columns if c.name not in ("ticker", "new")
)


def _to_date(value: str, ticker: str) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        log.warning("dropping unparseable date %r for %s", value, ticker)
        return None


def _default_source(asset: Asset) -> str:
    if asset.source:
        return asset.source
    return TIINGO_SOURCE if asset.asset_type is AssetType.MUTUAL_FUND else POLYGON_SOURCE


def asset_to_row(asset: Asset) -> dict[str, Any]:
    return {
        "ticker": asset.ticker,
        "asset_type": asset.asset_type.value if asset.asset_type else "",
        "cik": asset.cik,
        "composite_figi": asset.composite_figi,
        "share_class_figi": asset.share_class_figi,
        "primary_exchange": asset.primary_exchange,
        "cusip": asset.cusip,
        "isin": asset.isin,
        "active": asset.active,
        "name": asset.name,
        "description": asset.description,
        "corporate_url": asset.corporate_url,
        "sector": asset.sector,
        "industry": asset.industry,
        "headquarters_location": asset.headquarters_location,
        "logo_url": asset.icon_url,
        "icon": asset.icon,
        "similar_tickers": list(asset.similar_tickers),
        "new": True,
        "updated": asset.updated,
        "listed_utc": _to_date(asset.listing_date, asset.ticker),
        "delisted_utc": _to_date(asset.delisting_date, asset.ticker),
        "last_updated_utc": asset.last_updated,
        "source": _default_source(asset),
        "polygon_detail_age": asset.polygon_detail_age,
    }


def row_to_asset(row: Any) -> Asset:
    m = row._mapping
    return Asset(
        ticker=m["ticker"],
        asset_type=AssetType(m["asset_type"]) if m["asset_type"] else None,
        cik=m["cik"],
        composite_figi=m["composite_figi"],
        share_class_figi=m["share_class_figi"],
        primary_exchange=m["primary_exchange"],
        cusip=m["cusip"],
        isin=m["isin"],
        name=m["name"],
        description=m["description"],
        corporate_url=m["corporate_url"],
        sector=m["sector"],
        industry=m["industry"],
        headquarters_location=m["headquarters_location"],
        icon_url=m["logo_url"],
        icon=bytes(m["icon"] or b""),
        similar_tickers=list(m["similar_tickers"] or []),
        updated=bool(m["updated"]),
        new=bool(m["new"]),
        listing_date=m["listed_utc"].isoformat() if m["listed_utc"] else "",
        delisting_date=m["delisted_utc"].isoformat() if m["delisted_utc"] else "",
        last_updated=m["last_updated_utc"],
        source=m["source"],
        polygon_detail_age=m["polygon_detail_age"] or 0,
    )


class RegistryDatabase:
    """Ticker-keyed upsert target for the reconciled registry.

    Usage::

        db = RegistryDatabase("sqlite:///registry.db")
        db.create_schema()
        db.upsert(assets)
    """

    def __init__(self, url_or_engine: str | sa_engine.Engine) -> None:
        if isinstance(url_or_engine, str):
            self.engine = create_engine(url_or_engine, future=True)
        else:
            self.engine = url_or_engine
        dialect = self.engine.dialect.name
        if dialect == "postgresql":
            self._insert = postgresql.insert
        elif dialect == "sqlite":
            self._insert = sqlite.insert
        else:
            raise RegistryError(
                f"Unsupported database dialect {dialect!r} (use postgresql or sqlite)",
                code=RegistryErrorCode.CONFIG_ERROR,
            )

    def create_schema(self) -> None:
        metadata.create_all(self.engine)

    def upsert(self, assets: list[Asset]) -> None:
        """Write the registry in one transaction.

        Every row is first marked inactive, not new and not updated; rows
        for the given assets are then inserted or overwritten, so only
        tickers absent from ``assets`` stay inactive. Rows inserted by this
        call are flagged new.
        """
        log.info("saving %d assets to database", len(assets))
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    update(assets_table).values(active=False, updated=False, new=False)
                )
                for asset in assets:
                    stmt = self._insert(assets_table).values(**asset_to_row(asset))
                    stmt = stmt.on_conflict_do_update(
                        index_elements=[assets_table.c.ticker],
                        set_={name: stmt.excluded[name] for name in _UPDATE_COLUMNS},
                    )
                    conn.execute(stmt)
        except SQLAlchemyError as exc:
            log.error("error saving assets to database: %s", exc)
            raise RegistryError(
                f"Database upsert failed: {exc}",
                code=RegistryErrorCode.STORAGE_ERROR,
            ) from exc

    def load(self) -> list[Asset]:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(select(assets_table).order_by(assets_table.c.ticker))
                assets = [row_to_asset(r) for r in rows]
        except SQLAlchemyError as exc:
            raise RegistryError(
                f"Database read failed: {exc}",
                code=RegistryErrorCode.STORAGE_ERROR,
            ) from exc
        log.info("loaded %d assets from database", len(assets))
        return assets
