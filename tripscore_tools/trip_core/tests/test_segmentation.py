from tripscore_tools.trip_core.config import SegmentationConfig
from tripscore_tools.trip_core.geo import offset_position
from tripscore_tools.trip_core.segmentation import TripStateMachine
from tripscore_tools.trip_core.tests.synthetic import LAT0, LON0, T0, parked, sample, straight
from tripscore_tools.trip_core.types import TransitionKind, TripPhase


def _feed(machine, samples):
    return [machine.on_sample(s) for s in samples]


def _started_machine():
    """Machine confirmed ACTIVE by 21 s at 10 m/s; returns (machine, last sample)."""
    m = TripStateMachine()
    stream = straight(21, 10.0)
    out = _feed(m, stream)
    assert out[-1].kind is TransitionKind.STARTED
    return m, stream[-1]


class TestTripStart:
    def test_idle_on_slow_samples(self):
        m = TripStateMachine()
        out = _feed(m, parked(30, T0, speed=1.0))
        assert all(t.kind is TransitionKind.NONE for t in out)
        assert m.phase is TripPhase.IDLE

    def test_high_speed_opens_candidate(self):
        m = TripStateMachine()
        m.on_sample(sample(T0, 5.0))
        assert m.phase is TripPhase.CANDIDATE_START
        assert m.candidate.candidate_start_time == T0

    def test_time_gate_not_met_at_19s(self):
        m = TripStateMachine()
        out = _feed(m, straight(20, 10.0))   # t = 0..19 s, 190 m
        assert all(t.kind is TransitionKind.NONE for t in out)
        assert m.candidate.accumulated_high_speed_ms == 19_000
        assert m.candidate.accumulated_distance_m > 150.0

    def test_time_gate_19_9s_then_20s(self):
        m = TripStateMachine()
        far_lat, far_lon = offset_position(LAT0, LON0, 300.0, 0.0)
        assert m.on_sample(sample(T0, 10.0)).kind is TransitionKind.NONE
        assert m.on_sample(sample(T0 + 19_900, 10.0, far_lat, far_lon)).kind is TransitionKind.NONE
        t = m.on_sample(sample(T0 + 20_000, 10.0, far_lat, far_lon))
        assert t.kind is TransitionKind.STARTED
        assert t.start_time == T0

    def test_distance_gate_not_met(self):
        m = TripStateMachine()
        # Reported speed is high but the fix only moves 7 m/s: 20 s = ~140 m
        out = _feed(m, straight(22, 10.0, step_m=7.0))
        assert all(t.kind is TransitionKind.NONE for t in out)
        assert m.candidate.accumulated_high_speed_ms == 21_000
        assert m.candidate.accumulated_distance_m < 150.0

    def test_distance_gate_then_start(self):
        m = TripStateMachine()
        out = _feed(m, straight(24, 10.0, step_m=7.0))
        kinds = [t.kind for t in out]
        assert TransitionKind.STARTED in kinds
        idx = kinds.index(TransitionKind.STARTED)
        assert idx == 22                      # 150 m needs 22 steps of 7 m
        assert out[idx].start_time == T0      # first high-speed sample, not promotion

    def test_start_time_is_first_high_speed_sample(self):
        m = TripStateMachine()
        _feed(m, parked(5, T0 - 5000))
        out = _feed(m, straight(25, 10.0))
        started = [t for t in out if t.kind is TransitionKind.STARTED]
        assert len(started) == 1
        assert started[0].start_time == T0

    def test_low_sample_aborts_candidate(self):
        m = TripStateMachine()
        _feed(m, straight(10, 10.0))
        m.on_sample(sample(T0 + 10_000, 1.0))
        assert m.phase is TripPhase.IDLE
        assert m.candidate is None
        # A new candidate restarts the clock
        out = _feed(m, straight(21, 10.0, start_ms=T0 + 11_000))
        assert out[-1].kind is TransitionKind.STARTED
        assert out[-1].start_time == T0 + 11_000

    def test_nan_speed_is_not_high(self):
        m = TripStateMachine()
        m.on_sample(sample(T0, float("nan")))
        assert m.phase is TripPhase.IDLE

    def test_custom_thresholds(self):
        cfg = SegmentationConfig(start_min_duration_ms=5_000, start_min_distance_m=40.0)
        m = TripStateMachine(cfg)
        out = _feed(m, straight(6, 10.0))
        assert out[-1].kind is TransitionKind.STARTED


class TestTripEnd:
    def test_ongoing_while_moving(self):
        m, last = _started_machine()
        out = _feed(m, straight(30, 10.0, start_ms=last.timestamp + 1000))
        assert all(t.kind is TransitionKind.ONGOING for t in out)

    def test_4m59s_low_speed_does_not_end(self):
        m, last = _started_machine()
        out = _feed(m, parked(299, last.timestamp + 1000))
        assert all(t.kind is TransitionKind.ONGOING for t in out)
        assert m.low_speed_ms == 299_000
        assert m.active

    def test_5m_low_speed_ends_at_completing_sample(self):
        m, last = _started_machine()
        stop = parked(300, last.timestamp + 1000)
        out = _feed(m, stop)
        assert out[-1].kind is TransitionKind.ENDED
        assert out[-1].end_time == stop[-1].timestamp
        assert all(t.kind is TransitionKind.ONGOING for t in out[:-1])
        assert m.phase is TripPhase.IDLE

    def test_moving_sample_resets_low_speed(self):
        m, last = _started_machine()
        t = last.timestamp
        _feed(m, parked(200, t + 1000))
        m.on_sample(sample(t + 201_000, 5.0))
        assert m.low_speed_ms == 0
        out = _feed(m, parked(200, t + 202_000))
        assert all(x.kind is TransitionKind.ONGOING for x in out)

    def test_creep_between_thresholds_resets(self):
        m, last = _started_machine()
        _feed(m, parked(100, last.timestamp + 1000))
        m.on_sample(sample(last.timestamp + 101_000, 1.5))   # neither low nor high
        assert m.low_speed_ms == 0


class TestTimeAnomalies:
    def test_regressing_timestamp_counts_as_zero(self):
        m = TripStateMachine()
        m.on_sample(sample(T0, 10.0))
        m.on_sample(sample(T0 + 5000, 10.0, *offset_position(LAT0, LON0, 50, 0)))
        m.on_sample(sample(T0 + 1000, 10.0, *offset_position(LAT0, LON0, 60, 0)))
        assert m.candidate.accumulated_high_speed_ms == 5000

    def test_duplicate_timestamps(self):
        m = TripStateMachine()
        for _ in range(50):
            m.on_sample(sample(T0, 10.0))
        assert m.candidate.accumulated_high_speed_ms == 0
        assert not m.active


class TestResumeAndForceEnd:
    def test_resume_enters_active(self):
        m = TripStateMachine()
        m.resume(T0 - 60_000)
        assert m.active
        assert m.trip_start_time == T0 - 60_000
        assert m.on_sample(sample(T0, 10.0)).kind is TransitionKind.ONGOING

    def test_force_end(self):
        m, last = _started_machine()
        t = m.force_end(last.timestamp + 5)
        assert t.kind is TransitionKind.ENDED
        assert t.end_time == last.timestamp + 5
        assert m.phase is TripPhase.IDLE

    def test_force_end_when_idle(self):
        m = TripStateMachine()
        assert m.force_end(T0).kind is TransitionKind.NONE

    def test_reset(self):
        m, _ = _started_machine()
        m.reset()
        assert m.phase is TripPhase.IDLE
        assert m.candidate is None
        assert m.low_speed_ms == 0
