"""
Security audit of a package's dependency tree.
"""
import json
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional
import logging

from ..config.global_config_loader import GlobalConfig
from ..core.enums import AuditLevel
from ..core.exceptions import AuditError
from .runner import CommandRunner


@dataclass
class AuditSummary:
    """Vulnerability counts written to audit-summary.json"""
    completed: bool = True
    totalVulnerabilities: int = 0
    critical: int = 0
    high: int = 0
    moderate: int = 0
    low: int = 0
    info: int = 0

    def count_at_or_above(self, level: AuditLevel) -> int:
        return sum(getattr(self, severity) for severity in level.severities())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_audit_json(cls, data: Dict[str, Any]) -> 'AuditSummary':
        vulns = (data.get('metadata') or {}).get('vulnerabilities') or {}
        summary = cls(
            critical=int(vulns.get('critical', 0)),
            high=int(vulns.get('high', 0)),
            moderate=int(vulns.get('moderate', 0)),
            low=int(vulns.get('low', 0)),
            info=int(vulns.get('info', 0)),
        )
        summary.totalVulnerabilities = (
            summary.critical + summary.high + summary.moderate + summary.low + summary.info
        )
        return summary


class AuditRunner:
    """Runs `npm audit --json` and applies the severity threshold"""

    def __init__(self, config: GlobalConfig, runner: Optional[CommandRunner] = None):
        self.config = config
        self.runner = runner or CommandRunner()
        self.logger = logging.getLogger(__name__)

    def run(self, package_dir: Path) -> AuditSummary:
        """
        Audit a package and write its summary file.

        Returns:
            AuditSummary; ``completed`` is False when the audit itself could not run

        Raises:
            AuditError: If vulnerabilities at or above the configured level exist
        """
        level = self.config.audit_level
        self.logger.info(f"🔒 Running security audit (level: {level.value})")

        # npm audit exits non-zero when it finds vulnerabilities
        result = self.runner.run(["npm", "audit", "--json"], package_dir, capture=True)
        try:
            summary = AuditSummary.from_audit_json(json.loads(result.stdout or "{}"))
        except (ValueError, TypeError, AttributeError) as e:
            self.logger.error(f"❌ Error running security audit: {e}")
            self.logger.warning("⚠️  Continuing despite audit error...")
            summary = AuditSummary(completed=False)

        summary_path = Path(package_dir) / self.config.audit.summary_file
        with open(summary_path, 'w') as f:
            json.dump(summary.to_dict(), f, indent=2)
        self.logger.info(f"✅ Audit summary written to {summary_path}")

        self.logger.info(
            f"📋 Audit: total={summary.totalVulnerabilities} critical={summary.critical} "
            f"high={summary.high} moderate={summary.moderate} low={summary.low} info={summary.info}"
        )

        if summary.completed and summary.count_at_or_above(level) > 0:
            raise AuditError(
                f"Security audit found {summary.count_at_or_above(level)} "
                f"vulnerabilit(ies) at or above '{level.value}'"
            )
        return summary
