"""
Tests for the demo cluster lifecycle: at most one cluster runs at a time.
"""

from __future__ import annotations

import pytest

from conftest import FakeInspector, FakeRunner, coordinator_line, segment_line
from gpdev.core.errors import ToolError
from gpdev.core.processes import NONE, UNKNOWN
from gpdev.core.session import CURRENT_ENV_VAR
from gpdev.workspace import Workspace


@pytest.mark.evergreen
class TestStart:
    """ClusterLifecycleManager.start stops whatever runs first."""

    def test_switch_from_running_environment(
        self, workspace: Workspace, runner: FakeRunner, cluster_sim: FakeInspector, environments
    ) -> None:
        master = environments["master"].install_dir
        cluster_sim.lines = [coordinator_line(master), segment_line(master)]

        workspace.cluster.start(environments["6X"])

        assert workspace.detector.detect() == "6X"
        assert len(workspace.detector.coordinators()) == 1
        stop = runner.calls_to("gpstop")[0]
        assert stop.env[CURRENT_ENV_VAR] == "master"
        assert runner.calls_to("gpstart")[0].env[CURRENT_ENV_VAR] == "6X"

    def test_order_is_stop_sweep_start(self, workspace: Workspace, runner: FakeRunner, cluster_sim, environments) -> None:
        workspace.cluster.start(environments["6X"])
        assert [c.cmd[0] for c in runner.calls] == ["gpstop", "killall", "gpstart"]

    def test_unknown_cluster_is_swept(
        self, workspace: Workspace, runner: FakeRunner, cluster_sim: FakeInspector, environments
    ) -> None:
        cluster_sim.lines = [coordinator_line("/opt/somebody/else")]

        workspace.cluster.start(environments["5X"])

        assert workspace.detector.detect() == "5X"
        assert runner.calls_to("gpstop")[0].env[CURRENT_ENV_VAR] == "5X"

    def test_restart_same_environment(self, workspace: Workspace, cluster_sim: FakeInspector, environments) -> None:
        six = environments["6X"].install_dir
        cluster_sim.lines = [coordinator_line(six)]
        workspace.cluster.start(environments["6X"])
        assert workspace.detector.detect() == "6X"
        assert len(workspace.detector.coordinators()) == 1

    def test_gpstop_failure_tolerated(self, workspace: Workspace, runner: FakeRunner, cluster_sim, environments) -> None:
        runner.fail("gpstop", returncode=2)
        workspace.cluster.start(environments["6X"])
        assert workspace.detector.detect() == "6X"

    def test_killall_nothing_found_tolerated(self, workspace: Workspace, runner: FakeRunner, environments) -> None:
        runner.fail("killall", returncode=1)
        workspace.cluster.start(environments["6X"])
        assert runner.calls_to("gpstart")

    def test_gpstart_failure_propagates(self, workspace: Workspace, runner: FakeRunner, environments) -> None:
        runner.fail("gpstart", returncode=1)
        with pytest.raises(ToolError):
            workspace.cluster.start(environments["6X"])


@pytest.mark.evergreen
class TestStop:
    """ClusterLifecycleManager.stop / stop_active."""

    def test_stop_active_when_nothing_runs(self, workspace: Workspace, runner: FakeRunner) -> None:
        assert workspace.cluster.stop_active() == NONE
        assert runner.calls == []

    def test_stop_active_unknown_does_nothing(self, workspace: Workspace, runner: FakeRunner, cluster_sim) -> None:
        cluster_sim.lines = [coordinator_line("/opt/somebody/else")]
        assert workspace.cluster.stop_active() == UNKNOWN
        assert runner.calls == []
        assert cluster_sim.lines

    def test_stop_active(self, workspace: Workspace, cluster_sim: FakeInspector, environments) -> None:
        cluster_sim.lines = [coordinator_line(environments["master"].install_dir)]
        assert workspace.cluster.stop_active() == "master"
        assert workspace.detector.detect() == NONE

    def test_stop_named(self, workspace: Workspace, runner: FakeRunner, cluster_sim, environments) -> None:
        cluster_sim.lines = [coordinator_line(environments["6X"].install_dir)]
        workspace.cluster.stop(environments["6X"])
        assert runner.commands() == [["gpstop", "-ai"], ["killall", "postgres"]]
        assert workspace.detector.detect() == NONE


@pytest.mark.evergreen
class TestRecreateAndDelete:
    """ClusterLifecycleManager.recreate / delete."""

    def test_recreate_commands(self, workspace: Workspace, runner: FakeRunner, environments) -> None:
        env = environments["6X"]
        workspace.cluster.recreate(env)

        make = runner.calls_to("make", "cluster")[0]
        assert make.cmd == [
            "make", "cluster",
            "WITH_STANDBY=false", "WITH_MIRRORS=false", "NUM_PRIMARY_MIRROR_PAIRS=3",
        ]
        assert make.cwd == env.demo_dir
        assert make.env["SHELL"] == "/bin/bash"
        assert runner.commands()[-1] == ["createdb"]

    def test_recreate_stops_running_cluster_first(
        self, workspace: Workspace, runner: FakeRunner, cluster_sim: FakeInspector, environments
    ) -> None:
        cluster_sim.lines = [coordinator_line(environments["master"].install_dir)]
        workspace.cluster.recreate(environments["6X"])
        assert runner.calls_to("gpstop")[0].env[CURRENT_ENV_VAR] == "master"
        assert runner.commands().index(["killall", "postgres"]) < runner.commands().index(
            ["make", "cluster", "WITH_STANDBY=false", "WITH_MIRRORS=false", "NUM_PRIMARY_MIRROR_PAIRS=3"]
        )

    def test_delete_empties_data_dirs(self, workspace: Workspace, runner: FakeRunner, environments) -> None:
        env = environments["6X"]
        (env.data_dirs / "qddir" / "demoDataDir-1").mkdir(parents=True)
        (env.data_dirs / "dbfast1").mkdir()

        removed = workspace.cluster.delete(env)

        assert len(removed) == 2
        assert env.data_dirs.is_dir()
        assert list(env.data_dirs.iterdir()) == []
        assert runner.commands() == [["killall", "postgres"]]

    def test_delete_without_data_dirs(self, workspace: Workspace, environments) -> None:
        assert workspace.cluster.delete(environments["6X"]) == []
