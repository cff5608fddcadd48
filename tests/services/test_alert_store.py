"""
Alert store tests: lookup semantics, single load, ingest and source errors.
"""
import asyncio
import json

import pytest

from alert_bot.exceptions import SourceUnavailable
from alert_bot.models import AlertRecord
from alert_bot.services.alert_store import AlertStore


def _names(records):
    return [r.user_principal_name for r in records]


@pytest.mark.asyncio
async def test_lookup_is_case_insensitive_substring(alert_store):
    await alert_store.ensure_loaded()

    assert _names(alert_store.lookup("DiEgO")) == ["diego@contoso.com"]
    assert _names(alert_store.lookup("contoso")) == ["diego@contoso.com", "tasmiha@contoso.com"]


@pytest.mark.asyncio
async def test_lookup_empty_string_returns_all_in_source_order(alert_store):
    await alert_store.ensure_loaded()

    assert _names(alert_store.lookup("")) == [
        "diego@contoso.com",
        "tasmiha@contoso.com",
        "moise@fabrikam.com",
    ]


@pytest.mark.asyncio
async def test_lookup_unknown_user_returns_empty(alert_store):
    await alert_store.ensure_loaded()

    assert alert_store.lookup("nobody") == []


def test_lookup_before_load_is_empty(alert_store):
    assert not alert_store.is_loaded
    assert alert_store.lookup("diego") == []


@pytest.mark.asyncio
async def test_source_is_read_only_once(alert_store, alerts_file):
    await alert_store.ensure_loaded()

    # Changes on disk after the first load are never picked up
    alerts_file.write_text(json.dumps([{"UserPrincipalName": "new@contoso.com"}]), encoding="utf-8")
    await alert_store.ensure_loaded()

    assert alert_store.lookup("new") == []
    assert len(alert_store.records) == 3


@pytest.mark.asyncio
async def test_concurrent_first_requests_share_one_load(alert_store):
    calls = 0
    original_load = alert_store.load

    async def counting_load():
        nonlocal calls
        calls += 1
        await asyncio.sleep(0)
        await original_load()

    alert_store.load = counting_load

    await asyncio.gather(*(alert_store.ensure_loaded() for _ in range(5)))

    assert calls == 1
    assert len(alert_store.records) == 3


@pytest.mark.asyncio
async def test_ingest_same_batch_twice_duplicates_matches(alert_store):
    await alert_store.ensure_loaded()
    batch = [AlertRecord(UserPrincipalName="diego@contoso.com", AlertId="9")]

    alert_store.ingest(batch)
    alert_store.ingest(batch)

    # One alert from the file plus two copies of the ingested one
    assert len(alert_store.lookup("diego")) == 3


@pytest.mark.asyncio
async def test_ingest_before_load_keeps_file_records_first(alert_store):
    alert_store.ingest([AlertRecord(UserPrincipalName="zoe@contoso.com")])

    await alert_store.ensure_loaded()

    assert _names(alert_store.lookup("contoso")) == [
        "diego@contoso.com",
        "tasmiha@contoso.com",
        "zoe@contoso.com",
    ]


@pytest.mark.asyncio
async def test_missing_file_raises_source_unavailable(tmp_path):
    store = AlertStore(tmp_path / "missing.json")

    with pytest.raises(SourceUnavailable):
        await store.ensure_loaded()

    assert not store.is_loaded


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [
    "{not json",
    json.dumps({"UserPrincipalName": "diego@contoso.com"}),
    json.dumps([{"Severity": "high"}]),
])
async def test_malformed_source_raises_source_unavailable(tmp_path, content):
    path = tmp_path / "alerts.json"
    path.write_text(content, encoding="utf-8")
    store = AlertStore(path)

    with pytest.raises(SourceUnavailable) as exc_info:
        await store.load()

    assert str(path) in str(exc_info.value)
    assert not store.is_loaded


@pytest.mark.asyncio
async def test_failed_load_is_retried_on_next_request(tmp_path):
    path = tmp_path / "alerts.json"
    store = AlertStore(path)

    with pytest.raises(SourceUnavailable):
        await store.ensure_loaded()

    path.write_text(json.dumps([{"UserPrincipalName": "diego@contoso.com"}]), encoding="utf-8")
    await store.ensure_loaded()

    assert store.is_loaded
    assert len(store.lookup("diego")) == 1


@pytest.mark.asyncio
async def test_null_and_non_object_activity_entries_load(tmp_path):
    path = tmp_path / "alerts.json"
    path.write_text(json.dumps([
        {"UserPrincipalName": "diego@contoso.com", "SequentialActivities": None},
        {"UserPrincipalName": "moise@contoso.com", "SequentialActivities": ["FileDownloaded"],
         "ComparativeActivities": [12, None]},
    ]), encoding="utf-8")
    store = AlertStore(path)

    await store.ensure_loaded()

    diego, moise = store.lookup("contoso")
    assert diego.sequential_activities == []
    assert moise.sequential_activities == ["FileDownloaded"]
    assert moise.comparative_activities == [12, None]
