from .enums import EventType, FlowType, BuildOutcome, ChangeSetKind
from .models import (
    PackageDescriptor,
    DependencyEdge,
    ChangeSet,
    BuildFlowContext,
    FlowResolution,
    BuildResult,
    RunReport,
)
