import json
import pytest

from pipeline_health.calculator import PipelineHealthCalculator
from pipeline_health.errors import AccountNotFoundError, DataAccessError
from pipeline_health.storage import InMemoryDataSource, JsonDirectoryDataSource

from factories import make_account, make_note, make_settings, make_transcript, full_content, run

ACCOUNT_FILE = {
    "account_id": "globex",
    "name": "Globex Corporation",
    "qualification_notes": [
        {
            "id": "n1",
            "account_id": "globex",
            "transcript_id": "t1",
            "framework": "BANT",
            "content": {"Budget": "$120k", "Authority": "VP Sales", "Need": "Forecast accuracy", "Timeline": "Q2"},
            "created_at": "2026-10-10T09:00:00Z"
        }
    ],
    "transcripts": [
        {"id": "t1", "account_id": "globex", "content": "Call notes", "created_at": "2026-10-10T08:30:00"}
    ],
    "action_items": [
        {"id": "a1", "account_id": "globex", "title": "Send pricing", "status": "In Progress",
         "created_at": "2026-10-11T10:00:00+02:00"}
    ]
}


class TestInMemoryDataSource:
    def test_returns_copies_of_records(self):
        source = InMemoryDataSource([make_account("acme", transcripts=[make_transcript(account_id="acme")])])

        transcripts = run(source.get_transcripts("acme"))
        transcripts.clear()

        assert len(run(source.get_transcripts("acme"))) == 1

    def test_unknown_account(self):
        with pytest.raises(AccountNotFoundError):
            run(InMemoryDataSource().get_action_items("nope"))

    def test_add(self):
        source = InMemoryDataSource()
        source.add(make_account("acme", notes=[make_note("BANT", full_content("BANT"), account_id="acme")]))
        assert len(run(source.get_qualification_notes("acme"))) == 1


class TestJsonDirectoryDataSource:
    def test_loads_account_file(self, tmp_path):
        (tmp_path / "globex.json").write_text(json.dumps(ACCOUNT_FILE))
        source = JsonDirectoryDataSource(tmp_path)

        notes = run(source.get_qualification_notes("globex"))
        transcripts = run(source.get_transcripts("globex"))
        items = run(source.get_action_items("globex"))

        assert notes[0].framework == "BANT"
        assert transcripts[0].created_at.tzinfo is not None
        assert items[0].status == "In Progress"
        assert items[0].created_at.utcoffset().total_seconds() == 7200

    def test_list_account_ids(self, tmp_path):
        for name in ("b", "a"):
            (tmp_path / f"{name}.json").write_text(json.dumps({"account_id": name}))
        (tmp_path / "readme.txt").write_text("ignored")

        assert JsonDirectoryDataSource(tmp_path).list_account_ids() == ["a", "b"]

    def test_list_missing_directory(self, tmp_path):
        with pytest.raises(DataAccessError):
            JsonDirectoryDataSource(tmp_path / "missing").list_account_ids()

    def test_missing_account(self, tmp_path):
        with pytest.raises(AccountNotFoundError):
            run(JsonDirectoryDataSource(tmp_path).get_transcripts("unknown"))

    @pytest.mark.parametrize("account_id", ["../secrets", "a/b", ".hidden", ""])
    def test_path_like_ids_are_rejected(self, tmp_path, account_id):
        with pytest.raises(AccountNotFoundError):
            run(JsonDirectoryDataSource(tmp_path).get_transcripts(account_id))

    def test_corrupt_file(self, tmp_path):
        (tmp_path / "broken.json").write_text("{not json")
        with pytest.raises(DataAccessError):
            run(JsonDirectoryDataSource(tmp_path).get_transcripts("broken"))

    def test_invalid_records(self, tmp_path):
        bad = {"transcripts": [{"id": "t1", "content": "missing account and timestamp"}]}
        (tmp_path / "bad.json").write_text(json.dumps(bad))
        with pytest.raises(DataAccessError):
            run(JsonDirectoryDataSource(tmp_path).get_transcripts("bad"))

    def test_account_records_read_file_once(self, tmp_path):
        (tmp_path / "globex.json").write_text(json.dumps(ACCOUNT_FILE))
        source = CountingJsonSource(tmp_path)
        calculator = PipelineHealthCalculator(source, settings=make_settings())

        result = run(calculator.compute_health("globex"))

        assert source.loads == 1
        assert result.breakdown.coverage == pytest.approx(1.0)


class CountingJsonSource(JsonDirectoryDataSource):
    def __init__(self, data_dir):
        super().__init__(data_dir)
        self.loads = 0

    def _load(self, account_id):
        self.loads += 1
        return super()._load(account_id)
