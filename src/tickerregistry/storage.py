"""Parquet snapshot store for the registry."""

from __future__ import annotations

import logging
from dataclasses import fields
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd

from tickerregistry.errors import RegistryError, RegistryErrorCode
from tickerregistry.models.asset import PERSISTED_FIELDS, Asset, AssetType

log = logging.getLogger(__name__)

_TEXT_FIELDS: tuple[str, ...] = tuple(
    f.name for f in fields(Asset) if f.type in ("str", str)
)


class ParquetRegistryStore:
    """Whole-registry snapshots in a single Snappy-compressed Parquet file.

    ``save`` writes every record it is given, delisted ones included, so the
    snapshot taken in the run that detected a delisting carries the mark.
    The file is replaced atomically.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> list[Asset]:
        """Read the last snapshot; a missing file is an empty registry."""
        if not self.path.exists():
            log.info("no registry snapshot at %s, starting empty", self.path)
            return []
        try:
            df = pd.read_parquet(self.path)
        except Exception as exc:
            raise RegistryError(
                f"Could not read registry snapshot {self.path}: {exc}",
                code=RegistryErrorCode.STORAGE_ERROR,
            ) from exc
        assets = self._df_to_assets(df)
        log.info("loaded %d assets from %s", len(assets), self.path)
        return assets

    def save(self, assets: list[Asset]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        df = self._assets_to_df(assets)
        try:
            df.to_parquet(tmp, compression="snappy", index=False)
            tmp.replace(self.path)
        except Exception as exc:
            tmp.unlink(missing_ok=True)
            raise RegistryError(
                f"Could not write registry snapshot {self.path}: {exc}",
                code=RegistryErrorCode.STORAGE_ERROR,
            ) from exc
        log.info("saved %d assets to %s", len(assets), self.path)

    # ---- helpers ----

    @staticmethod
    def _assets_to_df(assets: list[Asset]) -> pd.DataFrame:
        records = []
        for a in assets:
            row: dict[str, Any] = {name: getattr(a, name) for name in PERSISTED_FIELDS}
            row["asset_type"] = a.asset_type.value if a.asset_type else ""
            row["similar_tickers"] = list(a.similar_tickers)
            row["last_updated"] = pd.Timestamp(a.last_updated) if a.last_updated else pd.NaT
            records.append(row)
        return pd.DataFrame(records, columns=list(PERSISTED_FIELDS))

    @staticmethod
    def _df_to_assets(df: pd.DataFrame) -> list[Asset]:
        assets: list[Asset] = []
        for row in df.to_dict("records"):
            values: dict[str, Any] = {}
            for name in PERSISTED_FIELDS:
                if name in row:
                    values[name] = row[name]
            values["asset_type"] = _asset_type(row.get("asset_type"))
            values["similar_tickers"] = _str_list(row.get("similar_tickers"))
            values["last_updated"] = _timestamp(row.get("last_updated"))
            values["icon"] = row.get("icon") or b""
            values["polygon_detail_age"] = int(row.get("polygon_detail_age") or 0)
            values["updated"] = bool(row.get("updated", False))
            values["new"] = bool(row.get("new", False))
            for name in _TEXT_FIELDS:
                if values.get(name) is None:
                    values[name] = ""
            assets.append(Asset(**values))
        return assets


def _asset_type(value: Any) -> AssetType | None:
    if value is None or value == "" or (isinstance(value, float) and pd.isna(value)):
        return None
    try:
        return AssetType(value)
    except ValueError as exc:
        raise RegistryError(
            f"Unknown asset type in snapshot: {value!r}",
            code=RegistryErrorCode.STORAGE_ERROR,
        ) from exc


def _str_list(value: Any) -> list[str]:
    if value is None or isinstance(value, float):
        return []
    return [str(v) for v in value]


def _timestamp(value: Any) -> datetime | None:
    if value is None or pd.isna(value):
        return None
    return pd.Timestamp(value).to_pydatetime()
