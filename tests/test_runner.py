"""Tests for the end-to-end backup run."""

import logging
import os
import signal
from unittest.mock import Mock

import pytest

from smb_backup.core.copier import CopyEngine
from smb_backup.core.credentials import CredentialResolver
from smb_backup.core.errors import BackupInterrupted, MissingCredentials, MissingTool, MountFailed, MountPointBusy
from smb_backup.core.models import JobState
from smb_backup.core.mount import ShareMount
from smb_backup.core.runner import BackupRunner

from .fakes import FakeCopier, FakeMounter, make_job


FOLDER = "2025_03_04 - 18_05"


@pytest.fixture
def remote_dir(tmp_path):
    remote = tmp_path / "remote"
    remote.mkdir()
    return remote


def build_runner(job, mounter, copier=None, prompt=None, confirm=None,
                 notifier=None, reporter=None, tool_check=None):
    return BackupRunner(
        job,
        resolver=CredentialResolver(job.interactive, prompt=prompt),
        share_mount=ShareMount(mounter),
        copy_engine=CopyEngine(copier or FakeCopier(), confirm=confirm),
        notifier=notifier,
        reporter=reporter,
        tool_check=tool_check
    )


def assert_released(mount_root, mounter):
    assert os.listdir(mount_root) == []
    assert not mounter.mounted


class TestSuccessfulRun:

    def test_backup_lands_in_timestamped_folder(self, source_dir, mount_root, credentials_file, remote_dir):
        mounter = FakeMounter(remote_dir=str(remote_dir))
        notifier = Mock()
        runner = build_runner(make_job(source_dir, mount_root, credentials_file), mounter,
                              notifier=notifier)

        exit_code = runner.run()

        assert exit_code == 0
        assert (remote_dir / FOLDER / "a.txt").read_text() == "hello"
        assert (remote_dir / FOLDER / "sub" / "c.txt").exists()
        assert runner.result.file_count == 3
        assert runner.result.total_size == 15
        assert "credentials=" in mounter.mount_calls[0][2]
        notifier.backup_completed.assert_called_once_with(3, "15B")
        assert_released(mount_root, mounter)

    def test_state_history(self, source_dir, mount_root, credentials_file):
        runner = build_runner(make_job(source_dir, mount_root, credentials_file), FakeMounter())

        runner.run()

        assert runner.state_history == [
            JobState.INIT,
            JobState.CREDENTIAL_RESOLVED,
            JobState.MOUNTED,
            JobState.COPYING,
            JobState.SUCCEEDED,
            JobState.RELEASED,
            JobState.DONE,
        ]

    def test_interactive_run_does_not_notify(self, source_dir, mount_root, credentials_file):
        notifier = Mock()
        job = make_job(source_dir, mount_root, credentials_file, interactive=True)

        assert build_runner(job, FakeMounter(), notifier=notifier).run() == 0
        notifier.backup_completed.assert_not_called()

    def test_prompted_credentials_used_for_mount(self, source_dir, mount_root, tmp_path):
        mounter = FakeMounter()
        job = make_job(source_dir, mount_root, tmp_path / "absent", interactive=True)
        answers = iter(["anders", "pw"])

        exit_code = build_runner(job, mounter, prompt=lambda text, hide_input=False: next(answers)).run()

        assert exit_code == 0
        assert mounter.mount_calls[0][2].startswith("username=anders,password=pw,")

    def test_reporter_receives_result(self, source_dir, mount_root, credentials_file):
        reporter = Mock()
        job = make_job(source_dir, mount_root, credentials_file)
        runner = build_runner(job, FakeMounter(), reporter=reporter)

        runner.run()

        reporter.send_result.assert_called_once_with(job, runner.result, None)


class TestEmptySource:

    def test_automated_proceeds_with_zero_files(self, empty_source, mount_root, credentials_file):
        mounter = FakeMounter()
        runner = build_runner(make_job(empty_source, mount_root, credentials_file), mounter)

        assert runner.run() == 0
        assert runner.result.file_count == 0
        assert runner.result.success
        assert_released(mount_root, mounter)

    def test_interactive_cancel_exits_zero(self, empty_source, mount_root, credentials_file):
        mounter = FakeMounter()
        copier = FakeCopier()
        job = make_job(empty_source, mount_root, credentials_file, interactive=True)
        runner = build_runner(job, mounter, copier=copier, confirm=lambda text: False)

        assert runner.run() == 0
        assert runner.result.cancelled
        assert copier.calls == []
        assert JobState.RELEASED in runner.state_history
        assert_released(mount_root, mounter)


class TestFailures:

    def test_missing_credentials_never_mounts(self, source_dir, mount_root, tmp_path):
        mounter = FakeMounter()
        runner = build_runner(make_job(source_dir, mount_root, tmp_path / "absent"), mounter)

        assert runner.run() == 1
        assert isinstance(runner.error, MissingCredentials)
        assert mounter.mount_calls == []
        assert os.listdir(mount_root) == []

    def test_mount_failure_short_circuits_copy(self, source_dir, mount_root, credentials_file, remote_dir):
        mounter = FakeMounter(mount_exit=32, remote_dir=str(remote_dir))
        copier = FakeCopier()
        notifier = Mock()
        runner = build_runner(make_job(source_dir, mount_root, credentials_file), mounter,
                              copier=copier, notifier=notifier)

        assert runner.run() == 1
        assert isinstance(runner.error, MountFailed)
        assert copier.calls == []
        assert runner.result is None
        assert os.listdir(remote_dir) == []
        assert JobState.COPYING not in runner.state_history
        assert runner.state_history[-2:] == [JobState.RELEASED, JobState.DONE]
        notifier.backup_failed.assert_called_once()
        assert_released(mount_root, mounter)

    def test_mount_failure_interactive_prints_hints(self, source_dir, mount_root, credentials_file, capsys):
        job = make_job(source_dir, mount_root, credentials_file, interactive=True)

        assert build_runner(job, FakeMounter(mount_exit=1)).run() == 1

        err = capsys.readouterr().err
        assert "Please check:" in err
        assert "192.168.3.2" in err
        assert "Anders" in err

    def test_missing_source_never_mounts(self, tmp_path, mount_root, credentials_file):
        mounter = FakeMounter()
        runner = build_runner(make_job(tmp_path / "nope", mount_root, credentials_file), mounter)

        assert runner.run() == 1
        assert mounter.mount_calls == []
        assert runner.state_history == [JobState.INIT, JobState.DONE]

    def test_missing_tool_never_mounts(self, source_dir, mount_root, credentials_file):
        mounter = FakeMounter()

        def tool_check():
            raise MissingTool('rsync', 'rsync')

        runner = build_runner(make_job(source_dir, mount_root, credentials_file), mounter,
                              tool_check=tool_check)

        assert runner.run() == 1
        assert mounter.mount_calls == []

    def test_copy_errors_reported_but_not_fatal(self, source_dir, mount_root, credentials_file):
        mounter = FakeMounter()
        notifier = Mock()
        runner = build_runner(make_job(source_dir, mount_root, credentials_file), mounter,
                              copier=FakeCopier(exit_code=23), notifier=notifier)

        assert runner.run() == 0
        assert not runner.result.success
        assert runner.result.exit_code == 23
        assert JobState.FAILED_COPY in runner.state_history
        notifier.backup_failed.assert_called_once_with()
        assert_released(mount_root, mounter)

    def test_copy_errors_fatal_in_strict_mode(self, source_dir, mount_root, credentials_file):
        job = make_job(source_dir, mount_root, credentials_file, strict=True)

        assert build_runner(job, FakeMounter(), copier=FakeCopier(exit_code=23)).run() == 1

    def test_cleanup_failure_keeps_verdict(self, source_dir, mount_root, credentials_file, caplog):
        runner = build_runner(make_job(source_dir, mount_root, credentials_file),
                              FakeMounter(unmount_exit=1))

        with caplog.at_level(logging.WARNING):
            exit_code = runner.run()

        assert exit_code == 0
        assert runner.result.success
        assert "Cleanup failed" in caplog.text


class TestInterruption:

    @pytest.mark.parametrize("signum", [signal.SIGTERM, signal.SIGINT])
    def test_signal_during_copy_releases_and_fails(self, source_dir, mount_root, credentials_file, signum):
        mounter = FakeMounter()
        copier = FakeCopier(side_effect=lambda: os.kill(os.getpid(), signum))
        original_handler = signal.getsignal(signum)
        runner = build_runner(make_job(source_dir, mount_root, credentials_file), mounter, copier=copier)

        exit_code = runner.run()

        assert exit_code == 1
        assert runner.interrupted == signum
        assert runner.result is None
        assert JobState.RELEASED in runner.state_history
        assert mounter.unmount_calls
        assert_released(mount_root, mounter)
        assert signal.getsignal(signum) is original_handler

    def test_signal_during_mount_releases(self, source_dir, mount_root, credentials_file):
        class InterruptingMounter(FakeMounter):
            def mount(self, remote_path, mount_point, options):
                os.kill(os.getpid(), signal.SIGTERM)
                return super().mount(remote_path, mount_point, options)

        mounter = InterruptingMounter()
        runner = build_runner(make_job(source_dir, mount_root, credentials_file), mounter)

        assert runner.run() == 1
        assert_released(mount_root, mounter)

    def test_second_signal_during_mount_cleanup_still_releases(self, source_dir, mount_root, credentials_file):
        class RepeatedlyInterruptedMounter(FakeMounter):
            def mount(self, remote_path, mount_point, options):
                exit_code = super().mount(remote_path, mount_point, options)
                os.kill(os.getpid(), signal.SIGINT)
                return exit_code

            def unmount(self, mount_point):
                os.kill(os.getpid(), signal.SIGINT)
                return super().unmount(mount_point)

        mounter = RepeatedlyInterruptedMounter()
        runner = build_runner(make_job(source_dir, mount_root, credentials_file), mounter)

        assert runner.run() == 1
        assert runner.interrupted == signal.SIGINT
        assert isinstance(runner.error, BackupInterrupted)
        assert len(mounter.unmount_calls) == 1
        assert runner.share_mount.handle.released
        assert_released(mount_root, mounter)

    def test_second_signal_during_final_release_still_releases(self, source_dir, mount_root, credentials_file):
        class InterruptedUnmountMounter(FakeMounter):
            def unmount(self, mount_point):
                os.kill(os.getpid(), signal.SIGTERM)
                return super().unmount(mount_point)

        mounter = InterruptedUnmountMounter()
        copier = FakeCopier(side_effect=lambda: os.kill(os.getpid(), signal.SIGINT))
        runner = build_runner(make_job(source_dir, mount_root, credentials_file), mounter, copier=copier)

        assert runner.run() == 1
        assert runner.interrupted == signal.SIGTERM
        assert_released(mount_root, mounter)


class TestStaleMountPoint:

    def test_leftover_files_abort_before_mounting(self, source_dir, mount_root, credentials_file):
        mount_point = os.path.join(str(mount_root), f"smb_backup_{os.getpid()}")
        os.mkdir(mount_point)
        with open(os.path.join(mount_point, "leftover.txt"), "w") as f:
            f.write("from an earlier run")
        mounter = FakeMounter()
        copier = FakeCopier()
        runner = build_runner(make_job(source_dir, mount_root, credentials_file), mounter, copier=copier)

        assert runner.run() == 1
        assert isinstance(runner.error, MountPointBusy)
        assert mounter.mount_calls == []
        assert copier.calls == []
        assert os.path.exists(os.path.join(mount_point, "leftover.txt"))
        assert JobState.MOUNTED not in runner.state_history
