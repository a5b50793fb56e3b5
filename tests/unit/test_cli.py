"""Tests for the command line entry point's database commands."""
import os
from unittest.mock import patch

import pytest
import yaml

import main
from core.utils import CompanyFingerprinter
from database.database import create_session_factory
from database.repositories import SqlCompanyProfileStore, SqlJobSummaryStore
from etl.schemas import CompanyProfile, JobSummary


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump({"database": {"url": f"sqlite:///{tmp_path / 'cli.db'}"}}))
    return str(path)


@pytest.fixture
def stores(config_path, tmp_path):
    with patch.dict(os.environ, {}, clear=True):
        assert main.main(["--config", config_path, "init-db"]) == 0
    engine, factory = create_session_factory(f"sqlite:///{tmp_path / 'cli.db'}")
    yield SqlJobSummaryStore(factory), SqlCompanyProfileStore(factory)
    engine.dispose()


def _run(config_path, *args):
    with patch.dict(os.environ, {}, clear=True):
        return main.main(["--config", config_path, *args])


class TestCli:

    def test_delete_job(self, config_path, stores):
        job_store, _ = stores
        job_store.add(JobSummary(job_id="job-1", company_id="c1", company_name="Acme Corp"))

        assert _run(config_path, "delete-job", "--job-id", "job-1") == 0
        assert job_store.get("job-1") is None

    def test_delete_missing_job(self, config_path, stores):
        assert _run(config_path, "delete-job", "--job-id", "nope") == 1

    def test_delete_company(self, config_path, stores):
        _, company_store = stores
        company_id = CompanyFingerprinter.calculate("Acme Corp")
        company_store.add(CompanyProfile(company_id=company_id, company_name="Acme Corp"))

        assert _run(config_path, "delete-company", "--company-id", company_id) == 0
        assert company_store.get(company_id) is None

    def test_run_fails_fast_without_api_keys(self, config_path, stores):
        with pytest.raises(ValueError):
            _run(config_path, "run")

    def test_command_is_required(self, config_path):
        with pytest.raises(SystemExit):
            main.main(["--config", config_path])
