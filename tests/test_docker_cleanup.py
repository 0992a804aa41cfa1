from unittest.mock import MagicMock, patch

import pytest

from opsctl.docker_cleanup import cli
from opsctl.docker_cleanup.reaper import DockerCleanupConfig, DockerReaper, format_elapsed
from opsctl.errors import MissingToolError


def completed(stdout="", returncode=0, stderr=""):
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


def fake_docker(listings):
    """Build a subprocess.run replacement answering list commands from ``listings``."""
    def _run(command, **kwargs):
        return completed(stdout=listings.get(" ".join(command), ""))
    return MagicMock(side_effect=_run)


def make_reaper(dry_run=False, skip_confirmation=True, notifier=None, reply="y"):
    return DockerReaper(
        DockerCleanupConfig(dry_run=dry_run, skip_confirmation=skip_confirmation),
        notifier=notifier or MagicMock(),
        prompt=MagicMock(return_value=reply),
        clock=MagicMock(side_effect=[0.0, 3725.0]),
    )


@pytest.mark.parametrize("seconds,expected", [(0, "00:00:00"), (59.9, "00:00:59"), (3725, "01:02:05")])
def test_format_elapsed(seconds, expected):
    assert format_elapsed(seconds) == expected


class TestDockerReaper:
    @patch("opsctl.docker_cleanup.reaper.subprocess.run")
    def test_dry_run_executes_nothing(self, mock_run, capsys):
        notifier = MagicMock()
        report = make_reaper(dry_run=True, notifier=notifier).run()

        mock_run.assert_not_called()
        assert report.dry_run is True
        assert "docker system prune -af --volumes" in report.commands
        out = capsys.readouterr().out
        assert "[DRY RUN] Would stop all running containers" in out
        assert "[DRY RUN] Would execute: docker container rm -f $(docker container ls -aq)" in out
        notifier.send.assert_called_once_with("Docker cleanup DRY RUN completed in 01:02:05")

    def test_real_run_removes_listed_resources(self):
        listings = {
            "docker ps -q": "aaa\nbbb\n",
            "docker container ls -aq": "aaa\nbbb\nccc\n",
            "docker image ls -aq": "img1\n",
            "docker volume ls -q": "",
            "docker network ls -q -f type=custom": "net1\n",
        }
        mock_run = fake_docker(listings)
        notifier = MagicMock()
        with patch("opsctl.docker_cleanup.reaper.subprocess.run", mock_run):
            report = make_reaper(notifier=notifier).run()

        assert report.commands == [
            "docker stop aaa bbb",
            "docker container rm -f aaa bbb ccc",
            "docker image rm -f img1",
            "docker network rm net1",
            "docker system prune -af --volumes",
        ]
        executed = [" ".join(c.args[0]) for c in mock_run.call_args_list]
        assert "docker volume rm -f" not in executed
        assert "docker ps -a" in executed
        notifier.send.assert_called_once_with("Docker cleanup completed in 01:02:05")

    def test_failed_removal_does_not_abort(self):
        def _run(command, **kwargs):
            if command[:3] == ["docker", "image", "rm"]:
                return completed(returncode=1, stderr="image is in use")
            if command == ["docker", "image", "ls", "-aq"]:
                return completed(stdout="img1\n")
            return completed()

        with patch("opsctl.docker_cleanup.reaper.subprocess.run", MagicMock(side_effect=_run)):
            report = make_reaper().run()

        assert report.commands[-1] == "docker system prune -af --volumes"

    @pytest.mark.parametrize("reply", ["", "n", "no", " N "])
    @patch("opsctl.docker_cleanup.reaper.subprocess.run")
    def test_declined_confirmation_cancels(self, mock_run, reply, capsys):
        notifier = MagicMock()
        report = make_reaper(skip_confirmation=False, reply=reply, notifier=notifier).run()

        assert report.cancelled is True
        mock_run.assert_not_called()
        notifier.send.assert_not_called()
        assert "Operation cancelled." in capsys.readouterr().out

    @patch("opsctl.docker_cleanup.reaper.subprocess.run")
    def test_confirmation_accepts_y(self, mock_run, capsys):
        report = make_reaper(dry_run=True, skip_confirmation=False, reply="Y").run()
        assert report.cancelled is False
        out = capsys.readouterr().out
        assert "IRREVERSIBLE" in out
        assert "Running in DRY RUN mode" in out

    @pytest.mark.parametrize("reply", ["y", "yes", "Yes please", " y "])
    def test_replies_starting_with_y_proceed(self, reply):
        assert make_reaper(skip_confirmation=False, reply=reply).confirm() is True

    def test_eof_on_prompt_cancels(self):
        reaper = make_reaper(skip_confirmation=False)
        reaper._prompt.side_effect = EOFError
        assert reaper.confirm() is False

    @patch("opsctl.docker_cleanup.reaper.shutil.which", return_value=None)
    def test_preflight_requires_docker_for_real_runs(self, mock_which):
        with pytest.raises(MissingToolError):
            make_reaper().preflight()
        make_reaper(dry_run=True).preflight()


class TestCli:
    @pytest.fixture(autouse=True)
    def no_ntfy(self, monkeypatch, tmp_path):
        monkeypatch.delenv("NTFY_TOPIC", raising=False)
        monkeypatch.chdir(tmp_path)

    def test_flags(self):
        args = cli.parse_args(["-d", "-y"])
        assert args.dry_run is True
        assert args.yes is True

    def test_unknown_option_exits_1(self):
        with pytest.raises(SystemExit) as excinfo:
            cli.parse_args(["--force"])
        assert excinfo.value.code == 1

    @patch("opsctl.docker_cleanup.cli.DockerReaper")
    def test_main_builds_config(self, mock_reaper):
        assert cli.main(["--dry-run", "--yes"]) == 0
        config = mock_reaper.call_args[0][0]
        assert config == DockerCleanupConfig(dry_run=True, skip_confirmation=True)
        mock_reaper.return_value.run.assert_called_once()

    @patch("opsctl.docker_cleanup.reaper.shutil.which", return_value=None)
    def test_main_missing_docker(self, mock_which, capsys):
        assert cli.main(["-y"]) == 1
        assert "Docker CLI is not installed" in capsys.readouterr().err
