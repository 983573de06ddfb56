import argparse

from kisan_api.jobs import seed


def test_seed_dealers_are_well_formed():
    documents = [dealer.to_document() for dealer in seed.SEED_DEALERS]

    assert len(documents) == 5
    for document in documents:
        lng, lat = document["location"]["coordinates"]
        assert 72 < lng < 73 and 19 < lat < 20
        assert "google_place_id" not in document


def test_seed_dealers_replaces_collection(monkeypatch):
    events = []
    monkeypatch.setattr(seed, "connect_database", lambda: events.append("connect"))
    monkeypatch.setattr(seed, "disconnect_database", lambda: events.append("disconnect"))

    def fake_replace_all(documents):
        events.append(("replace", [doc["name"] for doc in documents]))
        return len(documents)

    monkeypatch.setattr(seed, "replace_all_dealers", fake_replace_all)

    inserted = seed.seed_dealers()

    assert inserted == 5
    assert events[0] == "connect"
    assert events[1][0] == "replace"
    assert events[1][1][0] == "AgroTech Solutions (Andheri)"
    assert events[2] == "disconnect"


def test_seed_dealers_dry_run_touches_nothing(monkeypatch):
    def fail():
        raise AssertionError("database should not be used")

    monkeypatch.setattr(seed, "connect_database", fail)

    assert seed.seed_dealers(dry_run=True) == 5


def test_build_parser_defaults():
    parser = seed.build_parser()
    args = parser.parse_args([])
    assert isinstance(parser, argparse.ArgumentParser)
    assert args.dry_run is False
    assert parser.parse_args(["--dry-run"]).dry_run is True
