import logging

from airgap.domain.types import DropReason, FixtureRecord, ProbeRecord
from airgap.usecases.reconcile import MERGE_PRECEDENCE, merge_records, reconcile


def probe(serial, part, **values):
    return ProbeRecord(serial=serial, part=part, measurements=dict(values))


def fixture(serial, part, sheet="Oct 21", ref=0.02, source="fx.xlsx"):
    return FixtureRecord(serial=serial, part=part, source_file=source, sheet_name=sheet, reference_measurement=ref)


def test_leading_zeros_match() -> None:
    res = reconcile([probe("123", "RRL", N=0.05)], [fixture("000123", "RRL")])
    (m,) = res.merged
    assert (m.serial, m.part) == ("123", "RRL")
    assert m.reference_measurement == 0.02
    assert m.measurements == {"N": 0.05}
    assert res.unmatched_count == 0


def test_probe_owns_identity_fixture_owns_metadata() -> None:
    p = probe("123", "RRL", N=0.05)
    m = merge_records(p, fixture("0123", "RRL", sheet="Tue", ref=-0.1, source="b.xlsx"))
    assert m.serial == "123"
    assert (m.source_file, m.sheet_name, m.reference_measurement) == ("b.xlsx", "Tue", -0.1)
    assert {k for k, side in MERGE_PRECEDENCE.items() if side == "probe"} == {"serial", "part", "measurements"}
    # копия, не ссылка на словарь щупа
    assert m.measurements == p.measurements
    assert m.measurements is not p.measurements


def test_one_probe_record_merges_with_several_sheets() -> None:
    res = reconcile([probe("1", "FRU"), probe("2", "FRU")],
                    [fixture("1", "FRU", sheet="Mon"), fixture("1", "FRU", sheet="Tue")])
    assert [m.sheet_name for m in res.merged] == ["Mon", "Tue"]
    assert res.matched_keys == {("1", "FRU")}
    assert res.unmatched_count == 1
    assert res.counts["matched"] == 2


def test_part_must_match_exactly() -> None:
    res = reconcile([probe("5", "FRU")], [fixture("5", "FRL")])
    assert res.merged == []
    assert res.counts[DropReason.NO_MATCH] == 1
    assert res.unmatched_count == 1


def test_invalid_part_and_missing_serial_are_counted() -> None:
    res = reconcile([probe("5", "FRU")], [fixture("5", "XYZ"), fixture("  ", "FRU")])
    assert res.merged == []
    assert res.counts[DropReason.INVALID_PART] == 1
    assert res.counts[DropReason.SERIAL_MISSING] == 1
    assert {d.reason for d in res.diagnostics} == {DropReason.INVALID_PART, DropReason.SERIAL_MISSING}


def test_fixture_only_identity_is_never_synthesized() -> None:
    res = reconcile([], [fixture("9", "RLL")])
    assert res.merged == []
    assert res.unmatched_count == 0


def test_duplicate_probe_key_later_row_wins() -> None:
    res = reconcile([probe("7", "FLL", N=0.1), probe("007", "FLL", N=0.2)], [fixture("7", "FLL")])
    assert res.merged[0].measurements == {"N": 0.2}
    assert res.counts[DropReason.DUPLICATE_PROBE_KEY] == 1
    # формула: все записи щупа минус различные совпавшие ключи
    assert res.unmatched_count == 1


def test_properties_over_mixed_input() -> None:
    probes = [probe(str(i), "FRU") for i in range(1, 6)]
    fixtures = [fixture(f"00{i}", "FRU") for i in (1, 3, 3, 9)] + [fixture("2", "BAD")]
    res = reconcile(probes, fixtures)
    assert len(res.merged) <= len(fixtures)
    assert len(res.merged) == 3
    assert res.unmatched_count == len(probes) - len({m.key for m in res.merged})
    assert res.unmatched_count == 3


def test_no_match_is_attributed_to_fixture_row(caplog) -> None:
    fx = FixtureRecord(serial="9", part="FRU", source_file="fx.xlsx", sheet_name="Mon", row=14)
    with caplog.at_level(logging.DEBUG, logger="airgap"):
        res = reconcile([probe("1", "FRU")], [fx])
    (diag,) = res.diagnostics
    assert diag.reason == DropReason.NO_MATCH
    assert (diag.source_file, diag.sheet, diag.row) == ("fx.xlsx", "Mon", 14)
    assert diag.detail == "9|FRU"
    assert res.counts[DropReason.NO_MATCH] == 1
    assert "no_match at Mon!R15: 9|FRU" in caplog.text
