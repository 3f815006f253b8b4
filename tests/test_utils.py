"""Tests for the asvflow utilities.

Copyright © 2025 Pixelgen Technologies AB.
"""

import json
import logging
import os
from pathlib import Path

import click
import pytest

from asvflow import __version__
from asvflow.utils import (
    get_thread_pool_executor,
    log_step_start,
    resolve_thread_count,
    reverse_complement,
    write_parameters_file,
)


def test_reverse_complement():
    assert reverse_complement("AAGGTTCCN") == "NGGAACCTT"
    assert reverse_complement("") == ""


def test_resolve_thread_count():
    assert resolve_thread_count(3) == 3
    assert resolve_thread_count(0) == (os.cpu_count() or 1)
    with pytest.raises(ValueError):
        resolve_thread_count(-1)


def test_get_thread_pool_executor():
    with get_thread_pool_executor(2) as executor:
        assert executor._max_workers == 2


def test_log_step_start(caplog):
    with caplog.at_level(logging.INFO):
        log_step_start(
            "denoise-paired",
            input_files=["in_f", "in_r"],
            output="table.tsv",
            trunc_len_f=150,
        )

    assert f"Start asvflow denoise-paired {__version__}" in caplog.text
    assert "Input file(s) in_f,in_r" in caplog.text
    assert "Output table.tsv" in caplog.text
    assert "Parameters:trunc-len-f=150" in caplog.text


def test_write_parameters_file(tmp_path):
    @click.command()
    @click.option("--output", type=click.Path())
    @click.option("--threads", type=int, default=1)
    @click.argument("input_dir")
    def command(output, threads, input_dir):
        pass

    ctx = click.Context(
        command,
        info_name="denoise-paired",
        obj={},
    )
    ctx.params = {"output": "out.tsv", "threads": 2, "input_dir": "in"}

    meta_file = tmp_path / "meta.json"
    write_parameters_file(ctx, meta_file, command_path="asvflow denoise-paired")

    data = json.loads(meta_file.read_text())
    assert data["cli"]["command"] == "asvflow denoise-paired"
    assert data["cli"]["options"] == {
        "--output": str(Path("out.tsv").resolve()),
        "--threads": 2,
    }
