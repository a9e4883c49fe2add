"""
Writes run outputs for the CI host.
"""
from typing import List, Optional
import logging

from ..core.enums import ChangeSetKind
from ..core.models import ChangeSet, PackageDescriptor, RunReport
from .result_sink import ResultSink

logger = logging.getLogger(__name__)


def write_discovery(sink: ResultSink, packages: List[PackageDescriptor]):
    sink.set('discovered-packages', [pkg.to_dict() for pkg in packages])
    sink.set('package-count', str(len(packages)))


def write_changes(sink: ResultSink, change_set: ChangeSet, discovered: List[PackageDescriptor]):
    changed = change_set.apply(discovered)
    sink.set('changed-packages', [pkg.to_changed_dict() for pkg in changed])
    sink.set('changed-count', str(len(changed)))
    sink.set('all-packages-changed', change_set.kind == ChangeSetKind.ALL_CHANGED)


def write_order(sink: ResultSink, ordered: List[PackageDescriptor]):
    sink.set('ordered-packages', [pkg.to_dict() for pkg in ordered])


def write_results(sink: ResultSink, report: RunReport, changed_count: Optional[int] = None):
    """Emit build-results and the aggregated summary keys"""
    sink.set('build-results', report.to_list())
    sink.set('packages-published', ",".join(report.published_names()))
    sink.set('packages-failed', ",".join(report.failed_names()))
    sink.set('publish-status', report.publish_status())
    sink.set('total-packages', str(report.total))
    if changed_count is not None:
        sink.set('changed-packages-count', str(changed_count))

    logger.info(f"  Total packages: {report.total}")
    logger.info(f"  Successfully published: {','.join(report.published_names())}")
    if report.failed_names():
        logger.info(f"  Failed packages: {','.join(report.failed_names())}")
