from flighttrack.models import ProviderDescriptor
from flighttrack.services.health import ProviderHealthRegistry


def _descriptors(*names):
    return [
        ProviderDescriptor(name=name, base_url=f"https://{name}.test", timeout_s=5.0, priority=index)
        for index, name in enumerate(names)
    ]


def _record(registry, name, successes, failures):
    for _ in range(successes):
        registry.record_outcome(name, True)
    for _ in range(failures):
        registry.record_outcome(name, False)


def test_untried_providers_follow_priority(clock):
    registry = ProviderHealthRegistry(_descriptors("a", "b", "c"), clock=clock)

    assert [d.name for d in registry.ranked_order()] == ["a", "b", "c"]
    assert registry.get("a").success_ratio == 0.5


def test_higher_success_ratio_ranks_first(clock):
    registry = ProviderHealthRegistry(_descriptors("a", "b"), clock=clock)

    _record(registry, "b", 1, 9)
    _record(registry, "a", 9, 1)
    clock.advance(3600)

    assert [d.name for d in registry.ranked_order()] == ["a", "b"]


def test_close_ratios_prefer_least_recently_used(clock):
    registry = ProviderHealthRegistry(_descriptors("a", "b"), clock=clock)

    _record(registry, "a", 11, 9)  # 0.55
    clock.advance(10)
    _record(registry, "b", 1, 1)  # 0.50, used more recently

    assert [d.name for d in registry.ranked_order()] == ["a", "b"]

    clock.advance(10)
    registry.record_outcome("a", True)  # ~0.57, now the most recent

    assert [d.name for d in registry.ranked_order()] == ["b", "a"]


def test_never_used_provider_counts_as_least_recent(clock):
    registry = ProviderHealthRegistry(_descriptors("a", "b"), clock=clock)

    registry.record_outcome("a", True)
    registry.record_outcome("a", False)  # 0.5, same as untried

    assert [d.name for d in registry.ranked_order()] == ["b", "a"]


def test_tie_break_threshold_is_configurable(clock):
    registry = ProviderHealthRegistry(_descriptors("a", "b"), tie_break_threshold=0.0, clock=clock)

    _record(registry, "a", 11, 9)
    clock.advance(10)
    _record(registry, "b", 1, 1)
    clock.advance(10)
    registry.record_outcome("a", True)

    assert [d.name for d in registry.ranked_order()] == ["a", "b"]


def test_record_outcome_updates_counters_and_timestamp(clock):
    registry = ProviderHealthRegistry(_descriptors("a"), clock=clock)

    registry.record_outcome("a", True)
    clock.advance(5)
    registry.record_outcome("a", False)

    health = registry.get("a")
    assert health.success_count == 1
    assert health.failure_count == 1
    assert health.last_used_at == clock.now
    assert registry.snapshot()[0]["success_ratio"] == 0.5
