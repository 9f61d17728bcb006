"""``ticker-registry`` command line entry point."""

# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from dotenv import load_dotenv

from tickerregistry.config import RegistryConfig, SourceType, load_config_from_env
from tickerregistry.errors import RegistryError, RemovalLimitExceeded
from tickerregistry.filters import remove_tickers
from tickerregistry.logging import configure_logging
from tickerregistry.models.asset import AssetType
from tickerregistry.reconciler import RegistryReconciler
from tickerregistry.storage import ParquetRegistryStore

log = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ticker-registry",
        description="Maintain the ticker registry from upstream listing feeds",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Reconcile the registry against the current feeds")
    run.add_argument(
        "--max-removed",
        type=int,
        help="Abort if more than this many assets would be delisted",
    )
    run.add_argument("--parquet-file", help="Registry snapshot path")
    run.add_argument("--database-url", help="SQLAlchemy database URL")
    run.add_argument(
        "--sources",
        help="Comma-separated sources in preference order (e.g. polygon,tiingo)",
    )
    run.add_argument(
        "--limit",
        type=int,
        help="Only process the first N assets (never persisted)",
    )
    run.add_argument("--dry-run", action="store_true", help="Reconcile without persisting")
    run.add_argument("--skip-enrich", action="store_true", help="Do not run enrichers")

    remove = sub.add_parser("remove", help="Drop tickers from the registry snapshot")
    remove.add_argument("tickers", nargs="+", metavar="TICKER")
    remove.add_argument("--parquet-file", help="Registry snapshot path")

    sub.add_parser("list-asset-types", help="Print the supported asset types")
    return parser


def _apply_overrides(config: RegistryConfig, args: argparse.Namespace) -> RegistryConfig:
    if getattr(args, "max_removed", None) is not None:
        config.max_removed = args.max_removed
    if getattr(args, "parquet_file", None):
        config.parquet_file = args.parquet_file
    if getattr(args, "database_url", None):
        config.database_url = args.database_url
    if getattr(args, "sources", None):
        try:
            config.sources = [
                SourceType(name.strip().lower())
                for name in args.sources.split(",")
                if name.strip()
            ]
        except ValueError as exc:
            raise ValueError(f"Unknown source in --sources: {exc}") from exc
    if getattr(args, "limit", None) is not None:
        config.limit = args.limit
    if getattr(args, "dry_run", False):
        config.dry_run = True
    if getattr(args, "skip_enrich", False):
        config.enrichers = []
    return config


def _cmd_run(config: RegistryConfig) -> int:
    report = RegistryReconciler(config).run()
    print(
        f"{len(report.assets)} assets: {len(report.new)} new, "
        f"{len(report.updated)} updated, {len(report.delisted)} delisted, "
        f"{len(report.decisions)} deduplicated"
    )
    if not report.committed:
        print("registry not persisted (dry run or --limit)")
    return 0


def _cmd_remove(config: RegistryConfig, tickers: list[str]) -> int:
    if not config.parquet_file:
        log.error("parquet_file must be set for remove")
        return 1
    store = ParquetRegistryStore(config.parquet_file)
    if not store.exists():
        log.error("registry snapshot %s does not exist", config.parquet_file)
        return 1
    assets = store.load()
    store.save(remove_tickers(assets, tickers))
    return 0


def _cmd_list_asset_types() -> int:
    for asset_type in AssetType:
        print(f"{asset_type.name:<16} {asset_type.value}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return the process exit status.

    0 on success, 1 on errors, 3 when the removal safety valve trips.
    """
    load_dotenv()
    args = _build_parser().parse_args(argv)
    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    if args.command == "list-asset-types":
        return _cmd_list_asset_types()

    try:
        config = _apply_overrides(load_config_from_env(), args)
        if args.command == "remove":
            return _cmd_remove(config, args.tickers)
        return _cmd_run(config)
    except RemovalLimitExceeded as exc:
        log.error("%s", exc.message)
        return RemovalLimitExceeded.exit_code
    except (RegistryError, ValueError) as exc:
        log.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
