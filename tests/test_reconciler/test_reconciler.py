"""Tests for mapping outcomes onto rows and running a city end to end."""

import pytest

from gymfinder.core.geocoding.constants import NO_MATCH_REASON
from gymfinder.core.geocoding.models import AccuracyTier, Failed, Resolved, RunReport
from gymfinder.core.geocoding.orchestrator import ResolutionOrchestrator
from gymfinder.core.geocoding.providers import GeocodingProvider
from gymfinder.reconciler.dataset import DatasetIntegrityError, load_dataset
from gymfinder.reconciler.reconciler import (
    GeocodingRun,
    apply_outcome,
    load_unresolved,
    persist,
    resolved_coordinates_by_address,
)
from tests.fixtures.dataset import TAMPA_CSV

RESOLVED = Resolved(coordinates="27.94000000,-82.45000000", accuracy=AccuracyTier.HIGH)


class TestLoadUnresolved:
    """Test load_unresolved function."""

    def test_groups_rows_by_address(self, write_dataset):
        dataset = load_dataset(write_dataset())
        report = RunReport(city="tampa")

        records = load_unresolved(dataset, "tampa", report)

        assert [(r.address, r.row_indices) for r in records] == [
            ("123 Main St, Suite 4, Tampa, FL", (0,)),
            ("500 Bay St, Tampa, FL", (1, 2)),
        ]
        assert records[1].label == "Bay Jiu Jitsu"
        assert all(r.city == "tampa" for r in records)
        assert report.skipped == 1

    def test_grouping_is_case_sensitive(self, write_dataset):
        dataset = load_dataset(
            write_dataset("name,address,coordinates\nA,1 main st,\nB,1 Main St,\n")
        )
        assert len(load_unresolved(dataset, "tampa")) == 2

    def test_rows_without_address(self, write_dataset):
        dataset = load_dataset(write_dataset("name,address,coordinates\nA,,\nB,  ,\n"))
        report = RunReport(city="tampa")

        assert load_unresolved(dataset, "tampa", report) == []
        assert report.missing_address == 2


class TestApplyOutcome:
    """Test apply_outcome function."""

    def test_writes_every_row_of_the_address(self, write_dataset):
        dataset = load_dataset(write_dataset())
        record = load_unresolved(dataset, "tampa")[1]

        assert apply_outcome(dataset, record, RESOLVED) == 2
        assert dataset.coordinates(1) == dataset.coordinates(2) == RESOLVED.coordinates

    def test_idempotent(self, write_dataset):
        dataset = load_dataset(write_dataset())
        record = load_unresolved(dataset, "tampa")[1]

        apply_outcome(dataset, record, RESOLVED)
        snapshot = [list(row) for row in dataset.rows]

        assert apply_outcome(dataset, record, RESOLVED) == 0
        assert dataset.rows == snapshot

    def test_failure_leaves_rows_untouched(self, write_dataset):
        dataset = load_dataset(write_dataset())
        record = load_unresolved(dataset, "tampa")[0]

        assert apply_outcome(dataset, record, Failed(NO_MATCH_REASON, 8)) == 0
        assert dataset.coordinates(0) == ""

    def test_persist_round_trip(self, write_dataset):
        path = write_dataset()
        dataset = load_dataset(path)
        apply_outcome(dataset, load_unresolved(dataset, "tampa")[1], RESOLVED)

        persist(dataset)

        reloaded = load_dataset(path)
        assert reloaded.coordinates(1) == RESOLVED.coordinates
        assert reloaded.coordinates(2) == RESOLVED.coordinates


def test_resolved_coordinates_by_address(write_dataset):
    dataset = load_dataset(write_dataset())
    assert resolved_coordinates_by_address(dataset) == {
        "42 Dale Mabry Hwy, Tampa, FL": "27.93000000,-82.50000000"
    }


class TestGeocodingRun:
    """End-to-end runs against a provider double."""

    @pytest.fixture
    def run_for(self, test_settings, fake_sleep):
        def _build(provider: GeocodingProvider, **kwargs) -> GeocodingRun:
            orchestrator = ResolutionOrchestrator(provider, sleep=fake_sleep)
            return GeocodingRun("tampa", orchestrator=orchestrator, config=test_settings, **kwargs)

        return _build

    def test_resolves_and_persists(
        self, run_for, write_dataset, scripted_provider, make_candidate, data_dir
    ):
        path = write_dataset()
        provider = scripted_provider(default=make_candidate())

        report = run_for(provider).execute()

        assert provider.queries == ["123 Main St, Tampa, FL", "500 Bay St, Tampa, FL"]
        assert report.total == 2
        assert report.resolved == 2
        assert report.skipped == 1
        assert report.success_rate == 100.0
        assert report.accuracy["high"] == 2
        assert report.finalized

        dataset = load_dataset(path)
        assert [dataset.coordinates(i) for i in range(3)] == ["27.95000000,-82.46000000"] * 3
        assert dataset.coordinates(3) == "27.93000000,-82.50000000"
        assert (data_dir / "tampa-gyms-backup.csv").read_text(encoding="utf-8") == TAMPA_CSV

    def test_backup_written_before_any_mutation(
        self, run_for, write_dataset, make_candidate, data_dir
    ):
        path = write_dataset()
        backup_path = data_dir / "tampa-gyms-backup.csv"
        seen = []

        class ObservingProvider(GeocodingProvider):
            name = "observing"

            def lookup(self, query, region=None):
                seen.append((backup_path.read_text(encoding="utf-8"), path.read_text(encoding="utf-8")))
                return make_candidate()

        run_for(ObservingProvider()).execute()

        backup_content, dataset_content = seen[0]
        assert backup_content == dataset_content == TAMPA_CSV

    def test_unresolvable_address(self, run_for, write_dataset, scripted_provider):
        path = write_dataset(
            "name,address,coordinates\nNowhere Gym,\"1 Nowhere Rd, Tampa, FL\",\n"
        )

        report = run_for(scripted_provider()).execute()

        assert report.failed == 1
        assert report.resolved == 0
        assert [(f.address, f.reason) for f in report.failures] == [
            ("1 Nowhere Rd, Tampa, FL", NO_MATCH_REASON)
        ]
        assert load_dataset(path).coordinates(0) == ""

    def test_shared_address_single_lookup_sequence(
        self, run_for, write_dataset, scripted_provider, make_candidate
    ):
        path = write_dataset(
            "name,address,coordinates\n"
            'Bay Gym,"500 Bay St, Tampa, FL",\n'
            'Bay Gym Kids,"500 Bay St, Tampa, FL",\n'
        )
        provider = scripted_provider([make_candidate(latitude=27.9412345678)])

        run_for(provider).execute()

        assert provider.queries == ["500 Bay St, Tampa, FL"]
        dataset = load_dataset(path)
        assert dataset.coordinates(0) == dataset.coordinates(1) == "27.94123457,-82.46000000"

    def test_reuses_coordinates_from_matching_row(
        self, run_for, write_dataset, scripted_provider
    ):
        path = write_dataset(
            "name,address,coordinates\n"
            'Bay Gym,"500 Bay St, Tampa, FL","27.94000000,-82.45000000"\n'
            'Bay Gym Kids,"500 Bay St, Tampa, FL",\n'
        )
        provider = scripted_provider()

        report = run_for(provider).execute()

        assert provider.calls == []
        assert report.reused == 1
        assert report.total == 0
        assert load_dataset(path).coordinates(1) == "27.94000000,-82.45000000"

    def test_nothing_to_do_writes_nothing(self, run_for, write_dataset, scripted_provider, data_dir):
        write_dataset('name,address,coordinates\nA,"1 Main St, Tampa","27.9,-82.4"\n')

        report = run_for(scripted_provider()).execute()

        assert report.skipped == 1
        assert not (data_dir / "tampa-gyms-backup.csv").exists()

    def test_dry_run(self, test_settings, write_dataset, data_dir):
        path = write_dataset()

        report = GeocodingRun("tampa", config=test_settings, dry_run=True).execute()

        assert report.total == 2
        assert path.read_text(encoding="utf-8") == TAMPA_CSV
        assert not (data_dir / "tampa-gyms-backup.csv").exists()

    def test_orchestrator_required(self, test_settings):
        with pytest.raises(ValueError):
            GeocodingRun("tampa", config=test_settings)

    def test_missing_orchestrator_fails_before_backup(
        self, run_for, write_dataset, scripted_provider, data_dir
    ):
        path = write_dataset()
        run = run_for(scripted_provider())
        run.orchestrator = None

        with pytest.raises(RuntimeError):
            run.execute()

        assert path.read_text(encoding="utf-8") == TAMPA_CSV
        assert not (data_dir / "tampa-gyms-backup.csv").exists()

    def test_integrity_error_before_any_write(
        self, run_for, write_dataset, scripted_provider, data_dir
    ):
        path = write_dataset("name,address\nA,1 Main St\n")

        with pytest.raises(DatasetIntegrityError):
            run_for(scripted_provider()).execute()

        assert path.read_text(encoding="utf-8") == "name,address\nA,1 Main St\n"
        assert not (data_dir / "tampa-gyms-backup.csv").exists()

    def test_dropped_rows_counted(self, run_for, write_dataset, scripted_provider, make_candidate):
        write_dataset(TAMPA_CSV + "5,Broken,no quotes, Tampa, FL,,\n")

        report = run_for(scripted_provider(default=make_candidate())).execute()

        assert report.dropped_rows == 1

    def test_metrics_textfile(
        self, test_settings, write_dataset, scripted_provider, make_candidate, fake_sleep, tmp_path
    ):
        write_dataset()
        config = test_settings.model_copy(
            update={"METRICS_TEXTFILE": tmp_path / "metrics" / "geocoder.prom"}
        )
        orchestrator = ResolutionOrchestrator(
            scripted_provider(default=make_candidate()), sleep=fake_sleep
        )

        GeocodingRun("tampa", orchestrator=orchestrator, config=config).execute()

        content = (tmp_path / "metrics" / "geocoder.prom").read_text()
        assert "geocoder_address_outcomes_total" in content
