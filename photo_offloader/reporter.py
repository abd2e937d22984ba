"""Reporting for offload runs."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .clustering import ROOT_FOLDER
from .transfer import TransferPlan

logger = logging.getLogger(__name__)


class OffloadReporter:
    """Generates summaries and report files for offload runs."""

    def __init__(self, report_dir: Optional[str] = None):
        """Initialize reporter; reports are saved under report_dir when given."""
        self.report_dir = Path(report_dir) if report_dir else None

    def generate_summary_report(self, results: Dict[str, Any]) -> str:
        """
        Generate human-readable summary report.

        Args:
            results: RunSummary.to_dict() output

        Returns:
            Formatted summary report
        """
        stats = results.get('statistics', {})

        report = []
        report.append("=" * 50)
        report.append("PHOTO OFFLOAD SUMMARY REPORT")
        report.append("=" * 50)
        report.append(f"Completed: {results.get('finished', 'Unknown')}")
        report.append(f"Mode: {'DRY RUN' if results.get('dry_run', False) else 'LIVE RUN'}")
        report.append("")

        report.append("=== FILE STATISTICS ===")
        report.append(f"• Files copied: {stats.get('files_copied', 0):,} "
                      f"({stats.get('copied_size_human', '0B')})")
        report.append(f"• Files skipped (already in destination): {stats.get('files_skipped', 0):,}")
        report.append(f"• Files removed from source: {stats.get('files_removed', 0):,}")
        report.append(f"• Zombie edit files removed: {stats.get('sidecars_removed', 0):,}")
        report.append(f"• Files Removed (total): {stats.get('removed_total', 0):,}")
        if stats.get('files_undated'):
            report.append(f"• Files without capture date left on source: {stats['files_undated']:,}")
        report.append("")

        per_extension = results.get('per_extension', [])
        if per_extension:
            report.append("=== PASSES ===")
            for entry in per_extension:
                report.append(
                    f"• .{entry['extension']} -> {entry['destination']}: "
                    f"{entry['copied']:,} copied, {entry['skipped']:,} skipped, "
                    f"{entry['failed']:,} failed"
                )
            report.append("")

        errors = results.get('errors', [])
        if errors:
            report.append("=== ERRORS ENCOUNTERED ===")
            for error in errors:
                report.append(f"❌ {error}")
            report.append("")
            if not results.get('source_cleaned', False):
                report.append("Source was not cleaned; failed files are still on the card.")
                report.append("")

        success = results.get('success', True) and len(errors) == 0
        status = "✅ COMPLETE SUCCESS" if success else "⚠️ COMPLETED WITH ISSUES"
        report.append(f"STATUS: {status}")

        return "\n".join(report)

    def generate_plan_report(self, plans: List[TransferPlan]) -> str:
        """Describe the folders each pass would fill."""
        report = []
        for plan in plans:
            report.append(f"=== .{plan.extension} ({plan.file_count:,} files) ===")
            if not plan.clusters:
                report.append("  (nothing to copy)")
            for cluster in plan.clusters:
                folder = "<root>" if cluster.destination_folder == ROOT_FOLDER else cluster.destination_folder
                report.append(f"  {folder}: {len(cluster.files):,} files")
            if plan.undated:
                report.append(f"  without capture date: {len(plan.undated):,} files")
            report.append("")
        return "\n".join(report)

    def save_report(self, results: Dict[str, Any], filename: Optional[str] = None) -> str:
        """
        Save the run results as JSON.

        Args:
            results: RunSummary.to_dict() output
            filename: Optional file path (auto-generated in report_dir if None)

        Returns:
            Path to saved report file
        """
        if filename is None:
            if self.report_dir is None:
                raise ValueError("No report file or report directory given")
            timestamp = results.get('finished', 'unknown').replace(':', '-')
            report_file = self.report_dir / f"offload_report_{timestamp}.json"
        else:
            report_file = Path(filename)
        report_file.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(report_file, 'w') as f:
                json.dump(results, f, indent=2)

            logger.info(f"Report saved: {report_file}")
            return str(report_file)

        except Exception as e:
            logger.error(f"Failed to save report: {e}")
            raise
