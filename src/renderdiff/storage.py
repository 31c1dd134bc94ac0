"""
Storage layer for persisting analysis artifacts.

Provides an abstract interface for storage backends and a file-based
implementation writing JSON reports, text summaries, batch CSVs and
screenshots.
"""

import csv
import json
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path

from .models import ROW_HEADERS, BatchResult, TargetReport
from .reporting import render_text_summary


class StorageError(Exception):
    """Base exception for storage errors."""

    pass


class Storage(ABC):
    """
    Abstract interface for storage backends.

    Designed to be swappable - a spreadsheet or database writer can replace
    file storage without changing engine code.
    """

    @abstractmethod
    def save_report(self, report: TargetReport, prefix: str = "analysis") -> list[str]:
        """
        Save one target report.

        Returns:
            Paths (or identifiers) of what was written

        Raises:
            StorageError: If save operation fails
        """
        pass

    @abstractmethod
    def save_batch(self, result: BatchResult, output_path: str | None = None) -> str:
        pass

    @abstractmethod
    def save_screenshot(self, engine_id: str, data: bytes) -> str:
        pass


class FileStorage(Storage):
    """
    File-based storage implementation.
    """

    def __init__(self, output_directory: str = "."):
        """
        Initialize file storage.

        Args:
            output_directory: Directory to save output files (default: current directory)
        """
        self.output_directory = Path(output_directory)
        self.output_directory.mkdir(parents=True, exist_ok=True)

    def save_report(self, report: TargetReport, prefix: str = "analysis") -> list[str]:
        """
        Save a report as JSON plus a human-readable summary.

        Args:
            report: TargetReport to save
            prefix: File name prefix

        Returns:
            Paths of the JSON report and the text summary
        """
        report_path = self.output_directory / f"{prefix}-report.json"
        summary_path = self.output_directory / f"{prefix}-summary.txt"

        try:
            with open(report_path, "w", encoding="utf-8") as jsonfile:
                json.dump(report.to_dict(), jsonfile, indent=2, ensure_ascii=False)

            with open(summary_path, "w", encoding="utf-8") as textfile:
                textfile.write(render_text_summary(report))

        except OSError as e:
            raise StorageError(f"Failed to save report: {str(e)}")

        return [str(report_path), str(summary_path)]

    def save_batch(self, result: BatchResult, output_path: str | None = None) -> str:
        """
        Save batch results as CSV, one flattened row per target.

        Deferred and invalid candidates are listed in the header comments so
        nothing is silently dropped.

        Args:
            result: BatchResult to save
            output_path: Optional output file name. If not provided, generates one.

        Returns:
            Path to the saved file
        """
        if output_path is None:
            timestamp = result.started_at.strftime("%Y%m%d_%H%M%S")
            output_path = f"batch_results_{timestamp}.csv"

        output_file_path = self.output_directory / output_path

        try:
            with open(output_file_path, "w", newline="", encoding="utf-8") as csvfile:
                # Write summary header
                csvfile.write("# Rendering Analysis Batch\n")
                csvfile.write(f"# Generated: {result.finished_at}\n")
                csvfile.write(f"# Targets Processed: {result.processed}\n")
                csvfile.write(f"# Targets Succeeded: {result.succeeded}\n")
                csvfile.write(f"# Targets Failed: {result.failed}\n")
                csvfile.write(f"# Targets Deferred: {len(result.deferred)}\n")
                for candidate in result.deferred:
                    csvfile.write(f"# Deferred: row {candidate.row_index} {candidate.url}\n")
                for candidate, error in result.invalid:
                    csvfile.write(f"# Invalid: row {candidate.row_index} {candidate.url} ({error})\n")
                for candidate, error in result.publish_errors:
                    csvfile.write(f"# Unpublished: row {candidate.row_index} {candidate.url} ({error})\n")
                csvfile.write("\n")

                writer = csv.writer(csvfile)
                writer.writerow(["Row", "URL", *ROW_HEADERS])
                for candidate, report in result.reports:
                    writer.writerow([candidate.row_index, candidate.url, *report.to_row()])

            return str(output_file_path)

        except OSError as e:
            raise StorageError(f"Failed to save results: {str(e)}")

    def save_screenshot(self, engine_id: str, data: bytes) -> str:
        """
        Write an opaque screenshot artifact to screenshots/<engine>-<timestamp>.png.
        """
        directory = self.output_directory / "screenshots"
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        path = directory / f"{engine_id}-{timestamp}.png"

        try:
            directory.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to save screenshot: {str(e)}")

        return str(path)
