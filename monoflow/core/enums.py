from enum import Enum


class EventType(str, Enum):
    RELEASE = "release"
    PULL_REQUEST = "pull_request"
    PUSH = "push"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str) -> 'EventType':
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class FlowType(str, Enum):
    RELEASE = "release"
    PR = "pr"
    DEV = "dev"
    PATCH = "patch"
    STAGING = "staging"
    WIP = "wip"


class BuildOutcome(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class ChangeSetKind(str, Enum):
    ALL_CHANGED = "all_changed"
    NONE_CHANGED = "none_changed"
    SUBSET = "subset"


class RegistryTarget(str, Enum):
    NPM = "npm"
    GITHUB = "github"
    BOTH = "both"

    @property
    def includes_npm(self) -> bool:
        return self in (RegistryTarget.NPM, RegistryTarget.BOTH)

    @property
    def includes_github(self) -> bool:
        return self in (RegistryTarget.GITHUB, RegistryTarget.BOTH)


class PackageManager(str, Enum):
    AUTO = "auto"
    NPM = "npm"
    BUN = "bun"


class AuditLevel(str, Enum):
    """Severity threshold, ordered from most to least severe"""
    CRITICAL = "critical"
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"

    def severities(self) -> list:
        """Severities at or above this threshold"""
        order = ["critical", "high", "moderate", "low", "info"]
        if self is AuditLevel.LOW:
            return order
        return order[:order.index(self.value) + 1]
