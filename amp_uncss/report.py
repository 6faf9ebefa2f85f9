"""
Run report - aggregated statistics written as JSON

The report file holds {"tests": [...]}; every run appends one entry so
repeated runs against the same report directory build a history.
"""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Sequence

from .config import UncssOptions
from .diagnostics import get_logger
from .document import AmpDocument, DocumentStatus

logger = get_logger(__name__)


def summarize(documents: Sequence[AmpDocument]) -> Dict[str, Any]:
    complete = [d for d in documents if d.status is DocumentStatus.COMPLETE]
    input_bytes = sum(d.stats.input_size for d in complete)
    output_bytes = sum(d.stats.output_size for d in complete)
    return {
        "files": len(documents),
        "optimized": len(complete),
        "failed": sum(1 for d in documents if d.is_failed),
        "tier_1": sum(1 for d in complete if d.tier == 1),
        "rules_removed": sum(d.stats.total_removed for d in complete),
        "input_bytes": input_bytes,
        "output_bytes": output_bytes,
        "saved_bytes": input_bytes - output_bytes,
    }


def build_report(documents: Sequence[AmpDocument], options: UncssOptions) -> Dict[str, Any]:
    return {
        "date": datetime.now().isoformat(),
        "options": options.to_dict(),
        "summary": summarize(documents),
        "files": [d.get_completion_stats() for d in documents],
    }


class JSONReportWriter:
    """Append run reports to a JSON file"""

    def __init__(self, directory: str, name: str):
        self.path = Path(directory) / name

    def load(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Existing report {self.path} is not valid JSON, starting a new one: {e}")
            return []
        return list(data.get("tests", [])) if isinstance(data, dict) else []

    def write(self, entry: Dict[str, Any]) -> str:
        tests = self.load()
        tests.append(entry)
        os.makedirs(self.path.parent, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({"tests": tests}, f, indent=2)
        logger.info(f"Report written to: {self.path}")
        return str(self.path)
