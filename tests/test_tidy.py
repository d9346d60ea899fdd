from airgap.domain.types import MergedRecord, ProbeRecord, State
from airgap.shared.constants import UNVERIFIED_SOURCE
from airgap.usecases.tidy import build_points, probe_to_points, to_tidy


def merged(serial="123", part="RRL", ref=0.02, **values):
    return MergedRecord(serial=serial, part=part, measurements=dict(values),
                        source_file="fx.xlsx", sheet_name="Oct 21", reference_measurement=ref)


def test_k_plus_m_points_share_reference() -> None:
    rec = merged(N=0.05, O=-0.03, P=None, Q=0.10, R=0.2, S=None, T=None, U=0.0)
    points = to_tidy([rec])
    assert len(points) == 3 + 2
    assert {p.reference_measurement for p in points} == {0.02}
    assert [(p.position, p.state) for p in points] == [
        ("N", State.PRE), ("O", State.PRE), ("Q", State.PRE), ("R", State.POST), ("U", State.POST),
    ]
    assert all((p.source_file, p.sheet_name) == ("fx.xlsx", "Oct 21") for p in points)


def test_record_without_values_yields_nothing() -> None:
    assert to_tidy([merged(N=None)]) == []


def test_fallback_only_when_nothing_merged() -> None:
    probes = [ProbeRecord(serial="1", part="FRU", measurements={"N": 0.1, "R": 0.2})]
    assert [p.state for p in build_points([merged(N=0.3)], probes)] == [State.PRE]
    assert build_points([merged(N=0.3)], probes)[0].serial == "123"
    assert build_points([], []) == []


def test_fallback_scenario_ten_probe_rows() -> None:
    probes = [
        ProbeRecord(serial=str(100 + i), part="FLU",
                    measurements={"N": 0.1 * i - 0.45, "O": 0.9 if i % 2 else -0.85, "R": 0.3})
        for i in range(10)
    ]
    points = build_points([], probes)
    assert points
    assert all(p.state == State.PRE for p in points)
    assert all(abs(p.value) <= 0.80 for p in points)
    assert all(p.reference_measurement is None and p.source_file == UNVERIFIED_SOURCE for p in points)
    assert {p.position for p in points} == {"N"}
    assert len(points) == 10


def test_fallback_bound_is_inclusive() -> None:
    probes = [ProbeRecord(serial="1", part="FRU", measurements={"N": 0.8, "O": -0.8, "P": 0.81, "Q": None})]
    assert [p.value for p in probe_to_points(probes)] == [0.8, -0.8]
