import json

import numpy as np
import pandas as pd
from openpyxl import load_workbook

from cytomark.core.export import (
    convert_numpy_types, export_csv, export_workbook, save_json, sheet_name,
)


def test_sheet_names_are_excel_safe():
    assert sheet_name("a" * 40) == "a" * 31
    assert sheet_name("alpha/lambda [grid]") == "alpha_lambda _grid_"


def test_workbook_has_one_sheet_per_table(tmp_path):
    tables = {
        "metrics": pd.DataFrame({"accuracy": [0.5]}),
        "x" * 35 + "1": pd.DataFrame({"a": [1]}),
        "x" * 35 + "2": pd.DataFrame({"a": [2]}),
    }
    path = export_workbook(tables, tmp_path / "out" / "results.xlsx")

    names = load_workbook(path).sheetnames
    assert len(names) == 3
    assert all(len(n) <= 31 for n in names)
    assert len(set(names)) == 3


def test_csv_export(tmp_path):
    written = export_csv({"metrics": pd.DataFrame({"accuracy": [0.5, 0.75]})}, tmp_path)
    assert written["metrics"].exists()
    assert list(pd.read_csv(written["metrics"], index_col=0)["accuracy"]) == [0.5, 0.75]


def test_json_nan_becomes_null(tmp_path):
    path = save_json({"precision": np.float64("nan"), "n": np.int64(3),
                      "flags": np.array([True, False])}, tmp_path / "summary.json")
    data = json.loads(path.read_text())
    assert data == {"precision": None, "n": 3, "flags": [True, False]}


def test_convert_nested():
    converted = convert_numpy_types({"a": [np.float32(1.5), (np.int32(2),)]})
    assert converted == {"a": [1.5, [2]]}
