import pytest

from conftest import RecordingGatherer
from pagegather.config.types import ArtifactDefn, ArtifactDependency, GathererDefn
from pagegather.gather.base_gatherer import HOOK_NAMES
from pagegather.gather.results import Err, Ok
from pagegather.gather.runner_helpers import (
    PhaseState,
    await_artifacts,
    collect_phase_artifacts,
    get_empty_artifact_state,
)


def defn(artifact_id, gatherer, dependencies=None):
    return ArtifactDefn(id=artifact_id, gatherer=GathererDefn(instance=gatherer), dependencies=dependencies)


def phase_state(definitions, mode="navigation", prior_artifacts=None):
    return PhaseState(
        url="https://example.com/",
        gather_mode=mode,
        driver=object(),
        artifact_definitions=definitions,
        prior_artifacts=prior_artifacts or {},
    )


async def run_all_phases(state):
    for phase in HOOK_NAMES:
        await collect_phase_artifacts(state, phase)
    return await await_artifacts(state.artifact_state)


def test_empty_state_has_every_phase():
    assert set(get_empty_artifact_state()) == set(HOOK_NAMES)


@pytest.mark.anyio
async def test_hooks_run_in_order_and_values_are_ok():
    gatherer = RecordingGatherer("value")
    state = phase_state([defn("A", gatherer)])

    artifacts = await run_all_phases(state)

    assert artifacts == {"A": Ok("value")}
    assert gatherer.calls == list(HOOK_NAMES)
    assert gatherer.contexts[0].url == "https://example.com/"
    assert gatherer.contexts[0].gather_mode == "navigation"


@pytest.mark.anyio
async def test_failed_hook_skips_later_hooks_of_same_gatherer():
    failing = RecordingGatherer("x", fail_in="start_instrumentation")
    healthy = RecordingGatherer("y")
    state = phase_state([defn("X", failing), defn("Y", healthy)])

    artifacts = await run_all_phases(state)

    assert failing.calls == ["start_instrumentation"]
    assert healthy.calls == list(HOOK_NAMES)
    assert isinstance(artifacts["X"], Err)
    assert str(artifacts["X"].error) == "boom"
    assert artifacts["Y"] == Ok("y")


@pytest.mark.anyio
async def test_unsupported_mode_is_skipped():
    timespan_only = RecordingGatherer("t", modes=("timespan",))
    state = phase_state([defn("T", timespan_only)], mode="snapshot")

    artifacts = await run_all_phases(state)

    assert artifacts == {}
    assert timespan_only.calls == []


@pytest.mark.anyio
async def test_dependency_value_is_passed_to_get_artifact():
    state = phase_state([
        defn("Dependency", RecordingGatherer(["a.png"])),
        defn("Dependent", RecordingGatherer(), {"ImageElements": ArtifactDependency(id="Dependency")}),
    ])

    artifacts = await run_all_phases(state)

    assert artifacts["Dependent"] == Ok({"ImageElements": ["a.png"]})


@pytest.mark.anyio
async def test_dependency_error_is_passed_as_value():
    state = phase_state([
        defn("Dependency", RecordingGatherer(["a.png"], fail_in="get_artifact")),
        defn("Dependent", RecordingGatherer(), {"ImageElements": ArtifactDependency(id="Dependency")}),
    ])

    artifacts = await run_all_phases(state)

    passed = artifacts["Dependent"].value["ImageElements"]
    assert isinstance(passed, RuntimeError)
    assert str(passed) == "boom"


@pytest.mark.anyio
async def test_dependency_from_earlier_navigation():
    state = phase_state(
        [defn("Dependent", RecordingGatherer(), {"Log": ArtifactDependency(id="DevtoolsLog")})],
        prior_artifacts={"DevtoolsLog": Ok([{"method": "Page.loadEventFired"}])},
    )

    artifacts = await run_all_phases(state)

    assert artifacts["Dependent"] == Ok({"Log": [{"method": "Page.loadEventFired"}]})


@pytest.mark.anyio
async def test_missing_dependency_is_reported_as_error_value():
    state = phase_state([defn("Dependent", RecordingGatherer(), {"Log": ArtifactDependency(id="Nowhere")})])

    artifacts = await run_all_phases(state)

    assert "did not run" in str(artifacts["Dependent"].value["Log"])


@pytest.mark.anyio
async def test_each_phase_runs_once_per_artifact():
    gatherer = RecordingGatherer("v")
    state = phase_state([defn("A", gatherer)])

    await collect_phase_artifacts(state, "get_artifact")
    await collect_phase_artifacts(state, "get_artifact")

    assert gatherer.calls == ["get_artifact"]


@pytest.mark.anyio
async def test_unknown_phase_is_rejected():
    with pytest.raises(ValueError, match="Unknown gather phase"):
        await collect_phase_artifacts(phase_state([]), "before_everything")
