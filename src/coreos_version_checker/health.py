from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

    from coreos_version_checker.repository import ReleaseRepository, Snapshot

SYSTEM_CODE = "coreos-version-checker"
NAME = "CoreOS Version Checker"
DESCRIPTION = "Checks for new CoreOS upgrades, and reports on the CVE severity score."
PANIC_GUIDE = "https://runbooks.in.ft.com/coreos-version-checker"

HIGH_CVSS = 7.0
CRITICAL_CVSS = 9.0
# high risk fixes have two weeks before they are escalated
HIGH_GRACE_PERIOD = datetime.timedelta(hours=336)


@dataclass(frozen=True)
class CheckResult:
    ok: bool
    output: str = ""


@dataclass(frozen=True)
class Check:
    id: str
    name: str
    business_impact: str
    severity: int
    technical_summary: str
    panic_guide: str
    checker: Callable[[Snapshot], CheckResult]

    def run(self, snapshot: Snapshot, now: datetime.datetime) -> dict[str, Any]:
        result = self.checker(snapshot)
        return {
            "id": self.id,
            "name": self.name,
            "ok": result.ok,
            "severity": self.severity,
            "businessImpact": self.business_impact,
            "technicalSummary": self.technical_summary,
            "panicGuide": self.panic_guide,
            "checkOutput": result.output,
            "lastUpdated": now.isoformat(),
        }


@dataclass(frozen=True)
class GTGStatus:
    good_to_go: bool
    message: str = ""


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(tz=datetime.UTC)


# the conditions below are evaluated against a single snapshot, health() and gtg() take one per call


def new_version_available(snapshot: Snapshot) -> bool:
    return snapshot.installed.version != snapshot.latest.version


def has_security_fixes(snapshot: Snapshot) -> bool:
    max_cvss = snapshot.latest.max_cvss
    return new_version_available(snapshot) and max_cvss is not None and max_cvss > 0


def high_security_fix_overdue(snapshot: Snapshot, now: datetime.datetime) -> bool:
    latest = snapshot.latest
    return (
        has_security_fixes(snapshot)
        and latest.max_cvss is not None
        and latest.max_cvss >= HIGH_CVSS
        and latest.release_date is not None
        and now > latest.release_date + HIGH_GRACE_PERIOD
    )


def critical_security_fix(snapshot: Snapshot) -> bool:
    max_cvss = snapshot.latest.max_cvss
    return new_version_available(snapshot) and max_cvss is not None and max_cvss >= CRITICAL_CVSS


class HealthService:
    def __init__(  # noqa: PLR0913
        self,
        repository: ReleaseRepository,
        system_code: str = SYSTEM_CODE,
        name: str = NAME,
        description: str = DESCRIPTION,
        panic_guide: str = PANIC_GUIDE,
        now: Callable[[], datetime.datetime] = _utcnow,
    ):
        self.repository = repository
        self.system_code = system_code
        self.name = name
        self.description = description
        self.panic_guide = panic_guide
        self.now = now

    def checks(self) -> list[Check]:
        return [
            self.release_info_retrieval_check(),
            self.security_fixes_check(),
            self.high_security_fixes_check(),
            self.critical_security_fixes_check(),
            self.latest_version_check(),
        ]

    def release_info_retrieval_check(self) -> Check:
        return Check(
            id="release-info-retrieval",
            name="Error while checking CoreOS Release Versions",
            business_impact="No business impact.",
            severity=2,
            technical_summary="We were unable to retrieve data from CoreOS Release or the CVE Information APIs.",
            panic_guide=self.panic_guide,
            checker=self.check_release_info_retrieval,
        )

    def security_fixes_check(self) -> Check:
        return Check(
            id="security-fixes",
            name="New CoreOS Version has Security Fixes",
            business_impact="It may be possible to compromise our publishing stack using a known security vulnerability.",
            severity=2,
            technical_summary="The latest version of CoreOS contains security fixes.",
            panic_guide=self.panic_guide,
            checker=self.check_any_security_fixes,
        )

    def high_security_fixes_check(self) -> Check:
        return Check(
            id="high-security-fixes",
            name="High Risk Security Fix Overdue",
            business_impact="It may be possible to compromise our publishing stack using a known security vulnerability.",
            severity=1,
            technical_summary=(
                "The latest version of CoreOS has a HIGH RISK security fix. The FT policy is to upgrade to this version "
                "within TWO WEEKS, a deadline which has now been passed!"
            ),
            panic_guide=self.panic_guide,
            checker=self.check_high_security_score,
        )

    def critical_security_fixes_check(self) -> Check:
        return Check(
            id="critical-security-fixes",
            name="Critical Security Fix",
            business_impact="It may be possible to compromise our publishing stack using a known critical security vulnerability.",
            severity=1,
            technical_summary="The latest version of CoreOS has a CRITICAL security fix.",
            panic_guide=self.panic_guide,
            checker=self.check_critical_security_score,
        )

    def latest_version_check(self) -> Check:
        return Check(
            id="latest-version",
            name="New CoreOS Version",
            business_impact="No direct business impact, but there could be important bug fixes in the latest release.",
            severity=2,
            technical_summary="The version of CoreOS doesn't match the latest available version from the official repository.",
            panic_guide=self.panic_guide,
            checker=self.compare_installed_with_latest,
        )

    # checkers, each reads a fresh snapshot unless it is handed one

    def check_release_info_retrieval(self, snapshot: Snapshot | None = None) -> CheckResult:
        snapshot = snapshot or self.repository.snapshot()
        if snapshot.error is not None:
            return CheckResult(ok=False, output=str(snapshot.error))
        if not snapshot.refreshed:
            return CheckResult(ok=True, output="Release information has not been retrieved yet.")
        return CheckResult(ok=True, output="Release information was retrieved successfully.")

    def compare_installed_with_latest(self, snapshot: Snapshot | None = None) -> CheckResult:
        snapshot = snapshot or self.repository.snapshot()
        if new_version_available(snapshot):
            return CheckResult(ok=False, output=f"There is a new version of CoreOS available: {snapshot.latest.version}")
        return CheckResult(ok=True)

    def check_any_security_fixes(self, snapshot: Snapshot | None = None) -> CheckResult:
        if has_security_fixes(snapshot or self.repository.snapshot()):
            return CheckResult(
                ok=False,
                output="The new version has at least one security fix, and should be prioritised for upgrade.",
            )
        return CheckResult(ok=True)

    def check_high_security_score(self, snapshot: Snapshot | None = None) -> CheckResult:
        if high_security_fix_overdue(snapshot or self.repository.snapshot(), self.now()):
            return CheckResult(
                ok=False,
                output="The new version has a HIGH LEVEL security fix that is over TWO WEEKS old! CoreOS must be upgraded.",
            )
        return CheckResult(ok=True)

    def check_critical_security_score(self, snapshot: Snapshot | None = None) -> CheckResult:
        if critical_security_fix(snapshot or self.repository.snapshot()):
            return CheckResult(
                ok=False,
                output="The new version has a CRITICAL security fix! CoreOS must be upgraded within TWO DAYS!",
            )
        return CheckResult(ok=True)

    # aggregates

    def health(self) -> dict[str, Any]:
        snapshot = self.repository.snapshot()
        now = self.now()
        results = [check.run(snapshot, now) for check in self.checks()]
        return {
            "schemaVersion": 1,
            "systemCode": self.system_code,
            "name": self.name,
            "description": self.description,
            "checks": results,
            "ok": all(r["ok"] for r in results),
        }

    def gtg(self) -> GTGStatus:
        snapshot = self.repository.snapshot()
        for check in self.checks():
            result = check.checker(snapshot)
            if not result.ok:
                return GTGStatus(good_to_go=False, message=result.output)
        return GTGStatus(good_to_go=True)
