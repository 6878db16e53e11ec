import json

import pytest

from cytomark import __version__
from cytomark.cli import build_config, create_parser, main


@pytest.fixture
def config_file(tmp_path, fast_config):
    path = tmp_path / "config.json"
    settings = fast_config.to_dict()
    settings.pop("input")
    path.write_text(json.dumps(settings))
    return str(path)


def test_cli_runs_end_to_end(cohort_files, config_file, tmp_path, capsys):
    metadata_path, measurements_path = cohort_files
    output = tmp_path / "cli_out"
    main([
        "--metadata", metadata_path,
        "--measurements", measurements_path,
        "--config", config_file,
        "--output", str(output),
        "--no-sweep",
        "--no-clustering",
        "--n-trees", "20",
    ])

    printed = capsys.readouterr().out
    assert "Analysis completed successfully" in printed
    assert "random_forest" in printed
    assert (output / "cli_analysis_summary.txt").exists()


def test_overrides_take_precedence(cohort_files, config_file):
    metadata_path, measurements_path = cohort_files
    args = create_parser().parse_args([
        "--metadata", metadata_path, "--measurements", measurements_path,
        "--config", config_file, "--random-state", "7", "--train-fraction", "0.6",
        "--sweep-repeats", "2", "--no-sweep",
    ])
    config = build_config(args)

    assert config.input.metadata_path == metadata_path
    assert config.random_state == 7
    assert config.train_fraction == 0.6
    assert config.sweep_repeats == 2
    assert config.run_sweep is False
    assert config.n_lambda == 10


def test_missing_input_exits_with_status_1(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--metadata", str(tmp_path / "none.tsv"), "--measurements", str(tmp_path / "x.tsv")])
    assert exc.value.code == 1
    assert "not found" in capsys.readouterr().out


def test_invalid_fraction_exits_with_status_1(cohort_files):
    metadata_path, measurements_path = cohort_files
    with pytest.raises(SystemExit) as exc:
        main(["--metadata", metadata_path, "--measurements", measurements_path,
              "--train-fraction", "1.5"])
    assert exc.value.code == 1


def test_bad_config_exits_with_status_1(cohort_files, tmp_path):
    metadata_path, measurements_path = cohort_files
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"unknown_option": True}))
    with pytest.raises(SystemExit) as exc:
        main(["--metadata", metadata_path, "--measurements", measurements_path,
              "--config", str(bad)])
    assert exc.value.code == 1


def test_version(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--version"])
    assert exc.value.code == 0
    assert __version__ in capsys.readouterr().out
