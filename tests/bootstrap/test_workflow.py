from pathlib import Path

import pytest

from ansible_bootstrap.bootstrap.workflow import DeploymentWorkflow, WorkflowPhase, run_provision
from ansible_bootstrap.config.models import parse_config
from ansible_bootstrap.errors import (
    CommandFailureError,
    PathResolutionError,
    RemoteConnectionError,
    TransportError,
)
from ansible_bootstrap.observers.dispatcher import EventBus
from ansible_bootstrap.observers.events import (
    CleanupFailed,
    ConnectRetry,
    Progress,
    ProvisionFailed,
    ProvisionSucceeded,
    RemoteOutput,
)

# ----------------- Fakes -----------------

class FakeProcess:
    def __init__(self, cmd, out, rc):
        self.cmd, self.out, self.rc = cmd, out, rc

    def wait(self):
        if self.out:
            self.cmd.stdout.write(self.out)
        return self.rc


class FakeSession:
    """Records every operation; `responses` maps a command substring to (stdout, rc)."""

    def __init__(self, log, responses=None):
        self.log = log
        self.responses = responses or {}
        self.uploads = {}

    def upload_file(self, remote_path, stream, mode=None):
        self.uploads[remote_path] = (stream.read(), mode)
        self.log.append(("upload_file", remote_path, mode))

    def upload_dir(self, remote_root, local_dir):
        self.log.append(("upload_dir", remote_root, Path(local_dir)))

    def start(self, cmd):
        self.log.append(("exec", cmd.command))
        for needle, (out, rc) in self.responses.items():
            if needle in cmd.command:
                if isinstance(rc, Exception):
                    raise rc
                return FakeProcess(cmd, out, rc)
        return FakeProcess(cmd, b"", 0)

    def close(self):
        self.log.append(("close",))


class FakeCommunicator:
    def __init__(self, session, failures=0, timeout=300):
        self.session = session
        self.failures = failures
        self.timeout = timeout
        self.attempts = 0

    def connect(self):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise OSError("connection refused")
        return self.session

    def describe(self):
        return "root@10.0.0.5:22"


class Recorder:
    def __init__(self):
        self.events = []

    def notify(self, event):
        self.events.append(event)

    def of(self, kind):
        return [e for e in self.events if isinstance(e, kind)]

    def progress(self):
        return [e.text for e in self.of(Progress)]


@pytest.fixture
def playbook(tmp_path):
    d = tmp_path / "ansible"
    d.mkdir()
    p = d / "site.yml"
    p.write_text("- hosts: all\n")
    return p


def _make(cfg_raw, responses=None, failures=0, timeout=300, interval=3.0):
    log = []
    session = FakeSession(log, responses)
    comm = FakeCommunicator(session, failures=failures, timeout=timeout)
    rec = Recorder()
    wf = DeploymentWorkflow(
        parse_config(cfg_raw), comm, EventBus([rec], host=comm.describe()), retry_interval=interval,
    )
    return wf, session, rec, log


def _execs(log):
    return [entry[1] for entry in log if entry[0] == "exec"]


# ----------------- Tests -----------------

def test_happy_path_without_install(playbook):
    wf, session, rec, log = _make({"playbook": str(playbook), "skip_install": True})
    wf.run()

    assert wf.phases == [
        WorkflowPhase.CONNECTING,
        WorkflowPhase.UPLOADING_ARTIFACTS,
        WorkflowPhase.BUILDING_COMMAND,
        WorkflowPhase.RUNNING,
        WorkflowPhase.CLEANING_UP,
        WorkflowPhase.DONE,
    ]
    assert wf.command == (
        "ansible-playbook /tmp/ansible-bootstrap/site.yml "
        "--inventory-file=/tmp/ansible-bootstrap/.inventory-ansible-bootstrap/hosts"
    )
    assert ("upload_dir", "/tmp/ansible-bootstrap", playbook.parent) in log
    assert _execs(log) == [
        "sudo mkdir -p /tmp/ansible-bootstrap/.inventory-ansible-bootstrap",
        "sudo chmod 0777 /tmp/ansible-bootstrap/.inventory-ansible-bootstrap",
        "sudo " + wf.command,
        "sudo rm -rf /tmp/ansible-bootstrap",
    ]
    # the session is closed exactly once, as the last action
    assert log[-1] == ("close",)
    assert log.count(("close",)) == 1
    assert len(rec.of(ProvisionSucceeded)) == 1
    assert rec.of(ProvisionFailed) == []


def test_inventory_upload_contents(playbook):
    wf, session, rec, log = _make({
        "playbook": str(playbook), "skip_install": True,
        "hosts": ["web1"], "groups": ["app"],
    })
    wf.run()

    data, mode = session.uploads["/tmp/ansible-bootstrap/.inventory-ansible-bootstrap/hosts"]
    assert data.decode() == (
        "web1 ansible_connection=local\n"
        "localhost ansible_connection=local\n"
        "\n"
        "[app]\n"
        "web1 ansible_connection=local\n"
        "localhost ansible_connection=local\n"
        "\n"
    )
    assert mode is None
    assert rec.progress()[-6:-2] == [
        "Generating ansible inventory...",
        "Uploading ansible inventory to /tmp/ansible-bootstrap/.inventory-ansible-bootstrap/hosts...",
        "Ansible inventory uploaded.",
        "running command: " + wf.command,
    ]


def test_install_uploads_and_runs_installer(playbook):
    wf, session, rec, log = _make({"playbook": str(playbook), "install_version": "9.1.0"})
    wf.run()

    assert wf.phases[:3] == [
        WorkflowPhase.CONNECTING, WorkflowPhase.INSTALLING, WorkflowPhase.UPLOADING_ARTIFACTS,
    ]
    script, mode = session.uploads["/tmp/ansible-install.sh"]
    assert mode == 0o755
    assert b"ansible==9.1.0" in script
    assert _execs(log)[0] == (
        "sudo /bin/bash -c '/tmp/ansible-install.sh && rm /tmp/ansible-install.sh'"
    )
    assert rec.progress()[:4] == [
        "Connected to root@10.0.0.5:22.",
        "Installing 'ansible==9.1.0'...",
        "Uploading ansible installer program to /tmp/ansible-install.sh...",
        "Ansible installed.",
    ]


def test_installer_failure_stops_the_run(playbook):
    wf, session, rec, log = _make(
        {"playbook": str(playbook)}, responses={"ansible-install.sh": (b"", 1)},
    )
    with pytest.raises(CommandFailureError):
        wf.run()
    assert wf.phases[-2:] == [WorkflowPhase.INSTALLING, WorkflowPhase.FAILED]
    assert [e.phase for e in rec.of(ProvisionFailed)] == ["Installing"]
    assert not any("ansible-playbook" in c for c in _execs(log))
    assert log[-1] == ("close",)


def test_playbook_failure_skips_cleanup(playbook):
    wf, session, rec, log = _make(
        {"playbook": str(playbook), "skip_install": True},
        responses={"ansible-playbook": (b"fatal: [localhost]: FAILED!\n", 2)},
    )
    with pytest.raises(CommandFailureError) as ei:
        wf.run()

    assert ei.value.exit_status == 2
    assert wf.phase == WorkflowPhase.FAILED
    assert WorkflowPhase.CLEANING_UP not in wf.phases
    assert not any(c.startswith("sudo rm -rf") for c in _execs(log))
    assert [e.line for e in rec.of(RemoteOutput)] == ["fatal: [localhost]: FAILED!"]
    failed = rec.of(ProvisionFailed)
    assert len(failed) == 1 and failed[0].phase == "Running"
    assert rec.of(ProvisionSucceeded) == []
    assert log.count(("close",)) == 1


def test_cleanup_failure_does_not_fail_the_run(playbook):
    wf, session, rec, log = _make(
        {"playbook": str(playbook), "skip_install": True},
        responses={"rm -rf": (b"", 1)},
    )
    wf.run()

    assert wf.phases[-2:] == [WorkflowPhase.CLEANING_UP, WorkflowPhase.DONE]
    assert len(rec.of(CleanupFailed)) == 1
    assert len(rec.of(ProvisionSucceeded)) == 1
    assert "Cleanup complete." not in rec.progress()


def test_skip_cleanup(playbook):
    wf, session, rec, log = _make(
        {"playbook": str(playbook), "skip_install": True, "skip_cleanup": True}
    )
    wf.run()
    assert WorkflowPhase.CLEANING_UP not in wf.phases
    assert not any("rm -rf" in c for c in _execs(log))


def test_missing_playbook_fails_before_any_upload(tmp_path):
    missing = tmp_path / "nope" / "site.yml"
    wf, session, rec, log = _make({"playbook": str(missing), "skip_install": True})

    with pytest.raises(PathResolutionError) as ei:
        wf.run()

    assert str(ei.value) == f"Ansible module not found at path: [{missing}]"
    assert [e for e in log if e[0].startswith("upload")] == []
    assert rec.of(ProvisionFailed)[0].phase == "UploadingArtifacts"
    assert log == [("close",)]


def test_missing_vault_file(playbook, tmp_path):
    wf, session, rec, log = _make({
        "playbook": str(playbook), "skip_install": True,
        "vault_password_file": str(tmp_path / "missing-vault"),
    })
    with pytest.raises(PathResolutionError):
        wf.run()


def test_vault_file_is_uploaded_and_referenced(playbook, tmp_path):
    vault = tmp_path / "vault.txt"
    vault.write_text("s3cret\n")
    wf, session, rec, log = _make({
        "playbook": str(playbook), "skip_install": True,
        "vault_password_file": str(vault),
    })
    wf.run()

    target = "/tmp/ansible-bootstrap/.vault-ansible-bootstrap/vault.txt"
    assert session.uploads[target] == (b"s3cret\n", None)
    assert f"--vault-password-file={target}" in wf.command
    execs = _execs(log)
    assert execs[:2] == [
        "sudo mkdir -p /tmp/ansible-bootstrap/.vault-ansible-bootstrap",
        "sudo chmod 0777 /tmp/ansible-bootstrap/.vault-ansible-bootstrap",
    ]
    assert f"Uploading ansible vault password file to '{target}'..." in rec.progress()


def test_without_sudo_prefix(playbook):
    wf, session, rec, log = _make(
        {"playbook": str(playbook), "skip_install": True, "use_sudo": False}
    )
    wf.run()
    assert all(not c.startswith("sudo ") for c in _execs(log))
    assert wf.command in _execs(log)


def test_remote_output_is_relayed_in_order(playbook):
    out = b"PLAY [all]\nTASK [Gathering Facts]\nok: [localhost]\nPLAY RECAP"
    wf, session, rec, log = _make(
        {"playbook": str(playbook), "skip_install": True},
        responses={"ansible-playbook": (out, 0)},
    )
    wf.run()
    assert [(e.stream, e.line) for e in rec.of(RemoteOutput)] == [
        ("stdout", "PLAY [all]"),
        ("stdout", "TASK [Gathering Facts]"),
        ("stdout", "ok: [localhost]"),
        ("stdout", "PLAY RECAP"),
    ]


def test_transport_error_during_run(playbook):
    wf, session, rec, log = _make(
        {"playbook": str(playbook), "skip_install": True},
        responses={"ansible-playbook": (b"", TransportError("channel closed"))},
    )
    with pytest.raises(TransportError):
        wf.run()
    assert rec.of(ProvisionFailed)[0].error == "channel closed"
    assert log[-1] == ("close",)


def test_connect_retries_then_succeeds(playbook):
    wf, session, rec, log = _make(
        {"playbook": str(playbook), "skip_install": True}, failures=2, timeout=5, interval=0.01,
    )
    wf.run()
    assert wf.communicator.attempts == 3
    assert [e.attempt for e in rec.of(ConnectRetry)] == [1, 2]
    assert wf.phase == WorkflowPhase.DONE


def test_connect_never_succeeds(playbook):
    wf, session, rec, log = _make(
        {"playbook": str(playbook), "skip_install": True},
        failures=10_000, timeout=0.05, interval=0.01,
    )
    with pytest.raises(RemoteConnectionError) as ei:
        wf.run()

    assert str(ei.value) == "connection refused"
    assert wf.phases == [WorkflowPhase.CONNECTING, WorkflowPhase.FAILED]
    assert rec.of(ConnectRetry)
    assert rec.of(ProvisionFailed)[0].phase == "Connecting"
    # nothing was opened, so nothing is closed
    assert log == []


def test_events_share_run_id_and_host(playbook):
    wf, session, rec, log = _make({"playbook": str(playbook), "skip_install": True})
    wf.run()
    assert {e.run_id for e in rec.events} == {wf.bus.run_id}
    assert {e.host for e in rec.events} == {"root@10.0.0.5:22"}


def test_run_provision_entry_point(playbook):
    log = []
    comm = FakeCommunicator(FakeSession(log))
    rec = Recorder()

    assert run_provision(
        parse_config({"playbook": str(playbook), "skip_install": True}),
        comm, [rec], run_id="run-123",
    ) is None

    assert rec.of(ProvisionSucceeded)[0].run_id == "run-123"
    assert log[-1] == ("close",)
