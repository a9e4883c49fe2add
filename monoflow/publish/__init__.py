from .registry import RegistryConfigurator
from .publisher import PackagePublisher, PublishReport
from .audit import AuditRunner, AuditSummary
from .runner import CommandRunner, CommandResult

__all__ = [
    'RegistryConfigurator',
    'PackagePublisher',
    'PublishReport',
    'AuditRunner',
    'AuditSummary',
    'CommandRunner',
    'CommandResult',
]
