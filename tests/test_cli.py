"""CLI argument handling tests."""

from uuid import uuid4

import pytest

from stylegen.cli.regenerate import parse_args


def test_job_id_and_variant():
    job_id = uuid4()

    args = parse_args(["--job-id", str(job_id), "--variant-id", "7", "--max-rounds", "3"])

    assert args.job_id == job_id
    assert args.variant_id == 7
    assert args.max_rounds == 3
    assert args.sweep is False


def test_sweep_and_job_id_are_mutually_exclusive():
    with pytest.raises(SystemExit):
        parse_args(["--sweep", "--job-id", str(uuid4())])


def test_variant_id_requires_job_id():
    with pytest.raises(SystemExit):
        parse_args(["--sweep", "--variant-id", "3"])


def test_a_target_is_required():
    with pytest.raises(SystemExit):
        parse_args([])
