import logging
import threading

import pytest

from arrakis.core.config import PollingConfig
from arrakis.core.controller import AdaptivePollingController


def test_fresh_controller_waits_idle(controller):
    assert controller.average == 0.0
    assert controller.next_wait_time() == 20
    assert controller.is_enabled()


def test_first_observation_moves_to_medium(controller):
    controller.observe(10)
    assert controller.average == pytest.approx(3.0)
    assert controller.next_wait_time() == 10


def test_spike_protection_through_controller(controller):
    # no integer count lands exactly on 1.0 from zero
    controller._state.average = 1.0
    controller.observe(100)
    assert controller.average == pytest.approx(1.6)


def test_idle_decay_after_two_empty_polls(controller, clock):
    controller.observe(10)
    clock.set(1.0)
    controller.observe(0)
    assert controller.average == pytest.approx(3.0)

    clock.set(35.0)
    controller.observe(0)
    assert controller.average == pytest.approx(3.0 * 0.5 ** (35 / 30))
    assert controller.stats.decays == 1


def test_decay_halves_average_after_half_life(controller, clock):
    controller.observe(10)
    clock.set(1.0)
    controller.observe(0)
    clock.set(30.0)
    controller.observe(0)
    assert controller.average == pytest.approx(1.5)
    assert controller.next_wait_time() == 15


def test_long_idle_falls_back_to_idle_wait(controller, clock):
    controller.observe(10)
    for t in range(1, 400, 20):
        clock.set(float(t))
        controller.observe(0)
    assert controller.average == 0.0
    assert controller.next_wait_time() == 20


def test_drop_reset_after_sustained_low_volume(controller, clock):
    for i in range(9):
        clock.set(float(i))
        controller.observe(1)
    assert 0.0 < controller.average < 1.0
    assert controller.snapshot().low_volume_cycle_count == 9

    clock.set(9.0)
    controller.observe(1)
    snap = controller.snapshot()
    assert snap.average == 0.0
    assert snap.low_volume_cycle_count == 0
    assert snap.last_reset_time == 9.0
    # reset fired on the tenth observation (index 9)
    assert controller.stats.resets == 1
    assert controller.stats.last_reset_index == 9


def test_second_drop_reset_waits_for_interval(controller, clock):
    for i in range(10):
        clock.set(float(i))
        controller.observe(1)
    assert controller.average == 0.0

    for i in range(10, 30):
        clock.set(float(i))
        controller.observe(1)
    assert controller.average > 0.0
    assert controller.stats.resets == 1

    clock.set(70.0)
    controller.observe(1)
    assert controller.average == 0.0
    assert controller.stats.resets == 2


def test_counters_are_independent(controller, clock):
    controller.observe(1)
    controller.observe(0)
    snap = controller.snapshot()
    assert snap.low_volume_cycle_count == 1
    assert snap.consecutive_empty_count == 1

    controller.observe(1)
    snap = controller.snapshot()
    assert snap.low_volume_cycle_count == 2
    assert snap.consecutive_empty_count == 0

    controller.observe(3)
    assert controller.snapshot().low_volume_cycle_count == 0


def test_constant_traffic_converges(controller):
    for _ in range(60):
        controller.observe(7)
    assert controller.average == pytest.approx(7.0, abs=1e-4)
    assert controller.next_wait_time() == 5


def test_high_traffic_uses_shortest_wait(controller):
    for _ in range(60):
        controller.observe(12)
    assert controller.next_wait_time() == 1


def test_enable_disable_preserves_state(clock):
    controller = AdaptivePollingController(PollingConfig(disabled_wait_seconds=3), clock=clock)
    controller.observe(10)
    controller.observe(0)
    before = controller.snapshot()

    controller.disable()
    assert not controller.is_enabled()
    assert controller.next_wait_time() == 3

    controller.enable()
    controller.enable()
    assert controller.next_wait_time() == 10

    after = controller.snapshot()
    assert after.average == before.average
    assert after.low_volume_cycle_count == before.low_volume_cycle_count
    assert after.consecutive_empty_count == before.consecutive_empty_count


def test_observe_updates_state_while_disabled(controller):
    controller.disable()
    controller.observe(10)
    assert controller.average == pytest.approx(3.0)
    assert controller.next_wait_time() == 0


def test_starts_disabled_from_config(clock):
    controller = AdaptivePollingController(PollingConfig(enable_adaptive_polling=False), clock=clock)
    assert not controller.is_enabled()
    assert controller.next_wait_time() == 0


def test_negative_count_is_treated_as_empty(controller, caplog):
    controller.observe(10)
    with caplog.at_level(logging.WARNING, logger="arrakis.core.controller"):
        controller.observe(-4)
    assert controller.average == pytest.approx(3.0)
    assert controller.snapshot().consecutive_empty_count == 1
    assert list(controller.stats.message_counts) == [10, 0]
    assert "Negative message count" in caplog.text


@pytest.mark.parametrize("bad", [1.5, "3", None, True])
def test_non_integer_count_raises(controller, bad):
    with pytest.raises(TypeError):
        controller.observe(bad)


def test_reset_keeps_mode(controller):
    controller.observe(10)
    controller.disable()
    controller.reset()
    snap = controller.snapshot()
    assert snap.average == 0.0
    assert snap.last_update_time is None
    assert not snap.enabled


def test_snapshot_reports_level(controller):
    controller.observe(40)
    snap = controller.snapshot()
    assert snap.average == pytest.approx(12.0)
    assert snap.volume_level == "very_high"
    assert snap.wait_seconds == 1


def test_level_change_is_logged(controller, caplog):
    with caplog.at_level(logging.INFO, logger="arrakis.core.controller"):
        controller.observe(10)
    assert "from idle to medium" in caplog.text


def test_concurrent_callers_share_one_state(controller):
    def worker():
        for i in range(200):
            controller.next_wait_time()
            controller.observe(i % 5)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert controller.stats.polls == 1600
    assert controller.stats.waits_issued == 1600
    assert 0.0 <= controller.average <= 4.0
    assert controller.next_wait_time() in PollingConfig().wait_times().values()


def test_decays_stop_counting_once_average_is_zero(controller, clock):
    controller.observe(1)
    for i in range(1, 1001):
        clock.set(20.0 * i)
        controller.observe(0)
    assert controller.average == 0.0
    # 0.3 decays once at t=40 (to about 0.12) and snaps to zero
    assert controller.stats.decays == 1


def test_snapshot_reports_disabled_wait(clock):
    controller = AdaptivePollingController(PollingConfig(disabled_wait_seconds=2), clock=clock)
    controller.observe(10)
    assert controller.snapshot().wait_seconds == 10

    controller.disable()
    snap = controller.snapshot()
    assert snap.wait_seconds == 2
    assert snap.wait_seconds == controller.next_wait_time()
    assert snap.volume_level == "medium"
