"""
Result export: CSV tables, an xlsx workbook and a JSON run summary.
"""

import json
import logging
import math
import re
from pathlib import Path
from typing import Any, Dict, Union

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

MAX_SHEET_NAME = 31
_INVALID_SHEET_CHARS = re.compile(r'[\[\]\:\*\?\/\\]')


def convert_numpy_types(obj: Any) -> Any:
    """Convert numpy and pandas values to JSON-serialisable Python types."""
    if isinstance(obj, np.ndarray):
        return [convert_numpy_types(v) for v in obj.tolist()]
    if isinstance(obj, (pd.Series, pd.Index)):
        return [convert_numpy_types(v) for v in obj.tolist()]
    if isinstance(obj, pd.DataFrame):
        return [convert_numpy_types(r) for r in obj.reset_index().to_dict(orient='records')]
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, (float, np.floating)):
        value = float(obj)
        return None if math.isnan(value) or math.isinf(value) else value
    if isinstance(obj, dict):
        return {str(k): convert_numpy_types(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [convert_numpy_types(item) for item in obj]
    if isinstance(obj, Path):
        return str(obj)
    return obj


def sheet_name(name: str) -> str:
    """Excel-safe sheet name: invalid characters replaced, at most 31 characters."""
    cleaned = _INVALID_SHEET_CHARS.sub('_', str(name)).strip("'") or "sheet"
    return cleaned[:MAX_SHEET_NAME]


def _unique_sheet_names(names) -> Dict[str, str]:
    mapping, used = {}, set()
    for name in names:
        candidate = sheet_name(name)
        suffix = 1
        while candidate.lower() in used:
            tag = f"_{suffix}"
            candidate = sheet_name(name)[:MAX_SHEET_NAME - len(tag)] + tag
            suffix += 1
        used.add(candidate.lower())
        mapping[name] = candidate
    return mapping


def export_csv(tables: Dict[str, pd.DataFrame], output_dir: Union[str, Path]) -> Dict[str, Path]:
    """Write each table to ``<output_dir>/<name>.csv``."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    written = {}
    for name, table in tables.items():
        path = output_dir / f"{name}.csv"
        table.to_csv(path)
        written[name] = path
    logger.info(f"Wrote {len(written)} CSV tables to {output_dir}")
    return written


def export_workbook(tables: Dict[str, pd.DataFrame], path: Union[str, Path]) -> Path:
    """Write all tables into one xlsx workbook, one sheet per table."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    names = _unique_sheet_names(tables.keys())
    with pd.ExcelWriter(path, engine='openpyxl') as writer:
        for name, table in tables.items():
            table.to_excel(writer, sheet_name=names[name])
    logger.info(f"Wrote workbook with {len(tables)} sheets: {path}")
    return path


def save_json(data: Dict[str, Any], path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(convert_numpy_types(data), f, indent=2)
    logger.info(f"Saved summary: {path}")
    return path
