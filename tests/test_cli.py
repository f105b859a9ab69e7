"""
Unit tests for the command line interface
"""

import os
import json

from graphcache.__main__ import main


def test_load_and_info(loader, model_dir, cache_dir, capsys):
    """Test loading a model from the command line and inspecting the cache"""
    exit_code = main(["--cache-dir", cache_dir, "load", "tiny", "--base-path", str(model_dir), "--json"])

    assert exit_code == 0
    stats = json.loads(capsys.readouterr().out)
    assert stats["tiny"]["in_cache"] is False

    assert main(["--cache-dir", cache_dir, "list"]) == 0
    assert capsys.readouterr().out.strip() == "cache://tiny"

    assert main(["--cache-dir", cache_dir, "info", "--json"]) == 0
    info = json.loads(capsys.readouterr().out)
    assert [m["name"] for m in info["models"]] == ["tiny"]


def test_load_failure_exit_code(loader, model_dir, cache_dir):
    assert main(["--cache-dir", cache_dir, "load", "missing", "--base-path", str(model_dir)]) == 1


def test_clear(loader, model_dir, cache_dir):
    main(["--cache-dir", cache_dir, "load", "tiny", "--base-path", str(model_dir)])

    assert main(["--cache-dir", cache_dir, "clear", "--model", "other"]) == 1
    assert main(["--cache-dir", cache_dir, "clear"]) == 0
    assert loader.list_cached_models() == {}


def test_no_command_prints_help(loader, cache_dir, capsys):
    assert main(["--cache-dir", cache_dir]) == 0
    assert "usage" in capsys.readouterr().out


def test_load_progress_flag(loader, model_dir, cache_dir):
    """Test that --progress enables the download progress bar"""
    assert main(["--cache-dir", cache_dir, "load", "tiny", "--base-path", str(model_dir), "--progress"]) == 0
    assert loader.options["show_progress"] is True

    assert main(["--cache-dir", cache_dir, "load", "tiny", "--base-path", str(model_dir)]) == 0
    assert loader.options["show_progress"] is False


def test_list_reports_corrupt_entry(loader, model_dir, cache_dir, capsys):
    main(["--cache-dir", cache_dir, "load", "tiny", "--base-path", str(model_dir)])
    bad_dir = os.path.join(cache_dir, "models", "bad")
    os.makedirs(bad_dir)
    with open(os.path.join(bad_dir, "info.json"), 'w') as f:
        f.write("{not json")
    capsys.readouterr()

    assert main(["--cache-dir", cache_dir, "list"]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[0].startswith("cache://bad (corrupt info.json")
    assert lines[1] == "cache://tiny"
