import pandas as pd
import pytest

from contacts_reconcile.errors import SourceUnavailableError, StoreReadError, StoreWriteError
from contacts_reconcile.models import RawRecord
from contacts_reconcile.sources import (
    CsvContactSource,
    StaticContactSource,
    VCardContactSource,
    read_csv_with_optional_header,
    safe_get,
    split_multi_values,
)
from contacts_reconcile.stores import CsvPersonStore, InMemoryPersonStore


def test_safe_get_and_split_multi_values():
    row = {"A": "  value  ", "B": None}
    assert safe_get(row, "A") == "value"
    assert safe_get(row, "B") == ""
    assert safe_get(None, "A") == ""
    assert split_multi_values("a@x.com ::: b@x.com") == ["a@x.com", "b@x.com"]
    assert split_multi_values("") == []


def test_read_csv_with_optional_header(tmp_path):
    path = tmp_path / "export.csv"
    path.write_text(
        "\n".join(["exported by phone", "", "Name,Email", "Ann Lee,ann@x.com", ""]),
        encoding="utf-8",
    )
    df = read_csv_with_optional_header(str(path), header_starts_with="Name,Email")
    assert df.iloc[0]["Name"] == "Ann Lee"


def test_static_source_returns_a_copy():
    source = StaticContactSource([RawRecord(source_id="1", name="Ann")])
    fetched = source.fetch_all()
    fetched.clear()
    assert len(source.fetch_all()) == 1


def test_csv_source_reads_google_style_columns(tmp_path):
    path = tmp_path / "google.csv"
    pd.DataFrame(
        [
            {
                "Given Name": "Ann",
                "Family Name": "Lee",
                "E-mail 1 - Value": "ann@x.com ::: ann@y.com",
                "E-mail 2 - Value": "lee@z.com",
                "Phone 1 - Value": "+1 555 0100",
            },
            {
                "Given Name": "",
                "Family Name": "",
                "E-mail 1 - Value": "",
                "E-mail 2 - Value": "",
                "Phone 1 - Value": "",
            },
        ]
    ).to_csv(path, index=False)

    records = CsvContactSource(str(path)).fetch_all()
    assert records[0] == RawRecord(
        source_id="0",
        name="Ann Lee",
        emails=["ann@x.com", "ann@y.com", "lee@z.com"],
        phones=["+1 555 0100"],
    )
    assert records[1].name is None
    assert records[1].emails == []


def test_csv_source_uses_id_column(tmp_path):
    path = tmp_path / "plain.csv"
    pd.DataFrame([{"ID": "abc", "Name": "Bob Cole", "Email": "bob@x.com", "Phone": "555"}]).to_csv(
        path, index=False
    )
    [record] = CsvContactSource(str(path)).fetch_all()
    assert (record.source_id, record.name, record.emails, record.phones) == (
        "abc",
        "Bob Cole",
        ["bob@x.com"],
        ["555"],
    )


def test_missing_files_raise_source_unavailable(tmp_path):
    with pytest.raises(SourceUnavailableError):
        CsvContactSource(str(tmp_path / "nope.csv")).fetch_all()
    with pytest.raises(SourceUnavailableError):
        VCardContactSource(str(tmp_path / "nope.vcf")).fetch_all()


def test_vcard_source_reads_cards(tmp_path):
    content = "\n".join(
        [
            "BEGIN:VCARD",
            "VERSION:3.0",
            "UID:card-1",
            "FN:Casey Example",
            "N:Example;Casey;;;",
            "EMAIL;TYPE=INTERNET;TYPE=WORK;TYPE=pref:casey.work@example.com",
            "item1.EMAIL;TYPE=INTERNET:casey.other@example.com",
            "TEL;TYPE=CELL;TYPE=pref:+1-555-000-0003",
            "END:VCARD",
            "BEGIN:VCARD",
            "VERSION:3.0",
            "N:Smith;Jane;Q;;",
            "END:VCARD",
            "",
        ]
    )
    path = tmp_path / "cards.vcf"
    path.write_text(content, encoding="utf-8")

    records = VCardContactSource(str(path)).fetch_all()
    assert records[0] == RawRecord(
        source_id="card-1",
        name="Casey Example",
        emails=["casey.work@example.com", "casey.other@example.com"],
        phones=["+1-555-000-0003"],
    )
    assert records[1].source_id == "1"
    assert records[1].name == "Jane Q Smith"


def test_vcard_source_unfolds_continuation_lines(tmp_path):
    path = tmp_path / "folded.vcf"
    path.write_text(
        "BEGIN:VCARD\r\nFN:Alexandra Very-Long\r\n  Surname\r\nEND:VCARD\r\n", encoding="utf-8"
    )
    [record] = VCardContactSource(str(path)).fetch_all()
    assert record.name == "Alexandra Very-Long Surname"


def test_in_memory_store_create_update_and_missing_id():
    store = InMemoryPersonStore()
    person = store.create(
        {"first_name": "Ann", "last_name": "Lee", "email": "ann@x.com", "tags": ["t"]}
    )
    assert person.id and person.created_at is not None
    updated = store.update(person.id, {"phone": "555"})
    assert updated.phone == "555"
    assert updated.email == "ann@x.com"
    assert store.update("missing", {"phone": "1"}) is None
    with pytest.raises(StoreWriteError):
        store.update(person.id, {"id": "other"})


def test_csv_store_persists_between_instances(tmp_path):
    path = str(tmp_path / "people.csv")
    store = CsvPersonStore(path)
    assert store.get_all() == []

    created = store.create(
        {
            "first_name": "Ann",
            "last_name": "Lee",
            "email": "ann@x.com",
            "phone": None,
            "relationship": "acquaintance",
            "tags": ["imported-from-contacts", "vip"],
        }
    )
    store.update(created.id, {"phone": "+15550100"})

    [reloaded] = CsvPersonStore(path).get_all()
    assert reloaded.id == created.id
    assert reloaded.phone == "+15550100"
    assert reloaded.tags == ["imported-from-contacts", "vip"]
    assert reloaded.created_at == created.created_at
    assert CsvPersonStore(path).update("missing", {"phone": "1"}) is None


def test_csv_store_treats_an_empty_file_as_no_people(tmp_path):
    path = tmp_path / "people.csv"
    path.write_text("", encoding="utf-8")
    store = CsvPersonStore(str(path))
    assert store.get_all() == []

    store.create({"first_name": "Ann", "tags": ["imported-from-contacts"]})
    assert [p.first_name for p in CsvPersonStore(str(path)).get_all()] == ["Ann"]


def test_csv_store_raises_read_error_for_malformed_file(tmp_path):
    path = tmp_path / "people.csv"
    path.write_text("id,first_name\n1,Ann,Lee,x,y\n", encoding="utf-8")
    with pytest.raises(StoreReadError):
        CsvPersonStore(str(path)).get_all()
