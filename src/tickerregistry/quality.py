"""Consistency checks for a reconciled registry."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from tickerregistry.models.asset import Asset


@dataclass
class ValidationCheck:
    """Single validation check result."""

    name: str
    passed: bool
    message: str = ""


@dataclass
class ValidationResult:
    """Aggregate validation result."""

    checks: list[ValidationCheck] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(c.passed for c in self.checks)

    @property
    def failed_checks(self) -> list[ValidationCheck]:
        return [c for c in self.checks if not c.passed]

    def get(self, name: str) -> ValidationCheck | None:
        return next((c for c in self.checks if c.name == name), None)


def _duplicates(values: list[str]) -> list[str]:
    return sorted(v for v, n in Counter(values).items() if n > 1)


def validate_registry(assets: list[Asset], max_removed: int) -> ValidationResult:
    """Run all consistency checks on a reconciled registry.

    Checks:
        1. Not empty
        2. Every asset has a ticker
        3. Tickers are unique
        4. Composite FIGIs are unique among active assets
        5. Removal count within the safety valve limit
    """
    from tickerregistry.safety import check_removal_limit

    result = ValidationResult()

    # 1. Not empty
    if not assets:
        result.checks.append(ValidationCheck("not_empty", False, "No assets provided"))
        return result
    result.checks.append(ValidationCheck("not_empty", True, f"{len(assets)} assets"))

    # 2. Tickers present
    missing = sum(1 for a in assets if not a.ticker)
    if missing:
        result.checks.append(
            ValidationCheck("tickers_present", False, f"{missing} assets without ticker")
        )
    else:
        result.checks.append(ValidationCheck("tickers_present", True))

    # 3. Unique tickers
    dup_tickers = _duplicates([a.ticker for a in assets if a.ticker])
    if dup_tickers:
        result.checks.append(ValidationCheck(
            "unique_tickers", False, f"duplicate tickers: {', '.join(dup_tickers[:10])}"
        ))
    else:
        result.checks.append(ValidationCheck("unique_tickers", True))

    # 4. Unique composite FIGI among active assets
    dup_figis = _duplicates([a.composite_figi for a in assets if a.active and a.composite_figi])
    if dup_figis:
        result.checks.append(ValidationCheck(
            "unique_composite_figi", False,
            f"{len(dup_figis)} composite FIGIs shared by active assets",
        ))
    else:
        result.checks.append(ValidationCheck("unique_composite_figi", True))

    # 5. Removal limit
    result.checks.append(check_removal_limit(assets, max_removed))

    return result
