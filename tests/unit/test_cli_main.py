from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from dkan_importer.cli import main as cli_main
from dkan_importer.remote.client import RemoteApiError
from dkan_importer.services.dictionary import DataDictionary

DICT_URL = "https://dkan.example.org/api/1/metastore/schemas/data-dictionary/items/dict-001"


def test_excel_file_argument_required(temp_workdir: Path):
    with pytest.raises(SystemExit) as e:
        cli_main([])
    assert e.value.code == 2


def test_remote_mode_needs_base_url(temp_workdir: Path, capsys):
    code = cli_main(["--excel-file", "data/input.xlsx", "--data-dictionary-id", "dict-001", "--validate-only"])
    assert code == 1
    assert "ERROR config: base url and data dictionary id are required" in capsys.readouterr().out


def test_publish_needs_dataset_and_username(temp_workdir: Path, capsys):
    code = cli_main(
        ["--excel-file", "data/input.xlsx", "--base-url", "https://dkan.example.org", "--data-dictionary-id", "d"]
    )
    assert code == 1
    assert "dataset id and username are required" in capsys.readouterr().out


def test_http_base_url_rejected(temp_workdir: Path, capsys):
    code = cli_main(["--excel-file", "x.xlsx", "--base-url", "http://dkan.example.org", "--data-dictionary-id", "d"])
    assert code == 1
    assert "ERROR config: base url must use https" in capsys.readouterr().out


def test_publish_flow(write_config, sample_dictionary, make_workbook, valid_sheet_rows, temp_workdir: Path, capsys):
    excel = make_workbook(valid_sheet_rows, sheet_name="Samples")
    with patch('dkan_importer.cli.app.DkanClient') as mock_client_cls:
        client = mock_client_cls.return_value
        client.fetch_data_dictionary.return_value = DataDictionary.from_data("dict-001", sample_dictionary, url=DICT_URL)
        client.upload_csv.return_value = "https://dkan.example.org/files/new.csv"
        client.add_distribution.return_value = "old.csv"

        code = cli_main(["--excel-file", str(excel), "--password", "pw"])

    assert code == 0
    mock_client_cls.assert_called_once_with("https://dkan.example.org", "importer", "pw", timeout=10)
    client.fetch_data_dictionary.assert_called_once_with("dict-001")
    uploaded: Path = client.upload_csv.call_args.args[0]
    assert uploaded.parent == Path("out")
    assert uploaded.name.startswith("dataset-001_dict-001_")
    client.add_distribution.assert_called_once_with(
        "dataset-001", uploaded.name, "https://dkan.example.org/files/new.csv", DICT_URL
    )
    client.delete_remote_file.assert_called_once_with("old.csv")
    # アップロード後はローカル CSV を削除
    assert not uploaded.exists()
    out = capsys.readouterr().out
    assert "SUMMARY rows=2 invalid_rows=0 errors=0" in out


def test_password_prompted_when_missing(write_config, sample_dictionary, make_workbook, valid_sheet_rows):
    excel = make_workbook(valid_sheet_rows, sheet_name="Samples")
    with patch('dkan_importer.cli.app.getpass.getpass', return_value="typed") as mock_getpass:
        with patch('dkan_importer.cli.app.DkanClient') as mock_client_cls:
            client = mock_client_cls.return_value
            client.fetch_data_dictionary.return_value = DataDictionary.from_data(
                "dict-001", sample_dictionary, url=DICT_URL
            )
            client.upload_csv.return_value = "u"
            client.add_distribution.return_value = None
            code = cli_main(["--excel-file", str(excel)])

    assert code == 0
    mock_getpass.assert_called_once()
    assert mock_client_cls.call_args.args[2] == "typed"
    client.delete_remote_file.assert_not_called()


def test_validate_only_skips_upload(write_config, sample_dictionary, make_workbook, valid_sheet_rows, temp_workdir):
    excel = make_workbook(valid_sheet_rows, sheet_name="Samples")
    with patch('dkan_importer.cli.app.DkanClient') as mock_client_cls:
        client = mock_client_cls.return_value
        client.fetch_data_dictionary.return_value = DataDictionary.from_data("dict-001", sample_dictionary, url=DICT_URL)
        code = cli_main(["--excel-file", str(excel), "--validate-only", "--output", "result.csv"])

    assert code == 0
    client.upload_csv.assert_not_called()
    assert (temp_workdir / "result.csv").exists()


def test_remote_error_is_fatal(write_config, make_workbook, valid_sheet_rows, temp_workdir: Path, capsys):
    excel = make_workbook(valid_sheet_rows, sheet_name="Samples")
    with patch('dkan_importer.cli.app.DkanClient') as mock_client_cls:
        mock_client_cls.return_value.fetch_data_dictionary.side_effect = RemoteApiError(
            "Data dictionary with identifier 'dict-001' not found"
        )
        code = cli_main(["--excel-file", str(excel), "--validate-only"])

    assert code == 1
    assert "ERROR processing: Data dictionary with identifier 'dict-001' not found" in capsys.readouterr().out
    log = (temp_workdir / "errors.log").read_text(encoding="utf-8")
    assert "Processing Error:\nData dictionary with identifier 'dict-001' not found" in log


def test_debug_flag(write_dictionary, make_workbook, valid_sheet_rows, capsys):
    excel = make_workbook(valid_sheet_rows)
    code = cli_main(["--excel-file", str(excel), "--dictionary-file", str(write_dictionary), "--debug"])
    assert code == 0
    assert "DEBUG debug mode enabled" in capsys.readouterr().out
