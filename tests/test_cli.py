"""Tests for cli.py - command-line interface."""

import os
import sys
from unittest.mock import patch, MagicMock

import pytest

from vodreview.cli import display_text, main
from vodreview.store import CommentApiError

from conftest import make_comment


@pytest.fixture
def cli_client(mock_client):
    """Patch the CLI's client factory to return ``mock_client``."""
    with patch("vodreview.cli.make_client", return_value=mock_client):
        yield mock_client


class TestMainArgParsing:
    """Tests for main CLI argument parsing."""

    def test_no_command_prints_help(self, capsys):
        """No command should print help."""
        with patch.object(sys, 'argv', ['vodreview']):
            main()

        captured = capsys.readouterr()
        assert "usage" in captured.out.lower()

    def test_version_flag(self):
        """--version flag should print version and exit."""
        with patch.object(sys, 'argv', ['vodreview', '--version']):
            with pytest.raises(SystemExit) as exc_info:
                main()
            assert exc_info.value.code == 0

    def test_list_requires_scrim(self):
        with patch.object(sys, 'argv', ['vodreview', 'list']):
            with pytest.raises(SystemExit) as exc_info:
                main()
            assert exc_info.value.code == 2  # argparse error


class TestSetupCommand:
    """Tests for the setup command."""

    def test_setup_reports_settings(self, capsys):
        with patch.object(sys, 'argv', ['vodreview', '--api-url', 'http://bot:9', 'setup']):
            with patch('dotenv.load_dotenv'):
                with patch.dict('os.environ', {'VODREVIEW_TOKEN': 'tok'}):
                    main()

        captured = capsys.readouterr()
        assert "API: http://bot:9" in captured.err
        assert "VODREVIEW_TOKEN: set" in captured.err


class TestListCommand:
    """Tests for the list command."""

    def test_lists_all(self, cli_client, capsys):
        with patch.object(sys, 'argv', ['vodreview', 'list', '42']):
            main()

        captured = capsys.readouterr()
        assert "Comments (5)" in captured.err
        assert "#1 [0:10] kai: @Jo peek too wide #retake" in captured.err
        cli_client.list_comments.assert_called_once_with("42")

    def test_tag_filter(self, cli_client, capsys):
        with patch.object(sys, 'argv', ['vodreview', 'list', '42', '--tag', 'eco']):
            main()

        captured = capsys.readouterr()
        assert "Comments (1 of 5)" in captured.err
        assert "nice trade #eco" in captured.err
        assert "peek too wide" not in captured.err

    def test_mentioned_all(self, cli_client, capsys):
        with patch.object(sys, 'argv', ['vodreview', 'list', '42', '-m', 'all']):
            main()

        assert "Comments (2 of 5)" in capsys.readouterr().err

    def test_api_error_exits(self, cli_client):
        cli_client.list_comments.side_effect = CommentApiError("Failed to load comments")
        with patch.object(sys, 'argv', ['vodreview', 'list', '42']):
            with pytest.raises(SystemExit) as exc_info:
                main()
            assert exc_info.value.code == 1


class TestFacetsCommand:
    """Tests for the facets command."""

    def test_facets(self, cli_client, capsys):
        with patch.object(sys, 'argv', ['vodreview', 'facets', '42']):
            main()

        captured = capsys.readouterr()
        assert "Authors: jo, kai, mia" in captured.err
        assert "#eco (orange)" in captured.err
        assert "Mentioned: Jo, Kai, Mia" in captured.err


class TestUsersCommand:
    """Tests for the users command."""

    def test_lists_roster_with_avatar_fallback(self, cli_client, capsys):
        with patch.object(sys, 'argv', ['vodreview', 'users']):
            main()

        captured = capsys.readouterr()
        assert "Mentionable users (4)" in captured.err
        assert "Kai (https://cdn.example.com/kai.png)" in captured.err
        assert "Jo (JO)" in captured.err
        assert "Kaiser (KA)" in captured.err

    def test_api_error_exits(self, cli_client):
        cli_client.list_mention_users.side_effect = CommentApiError("Failed to load users")
        with patch.object(sys, 'argv', ['vodreview', 'users']):
            with pytest.raises(SystemExit) as exc_info:
                main()
            assert exc_info.value.code == 1


class TestWriteCommands:
    """Tests for add, edit and delete."""

    def test_add(self, cli_client, capsys):
        cli_client.create_comment.return_value = make_comment(6, 83, "<@Kai> late")
        with patch.object(sys, 'argv', ['vodreview', 'add', '42', '1:23', ' <@Kai> late ']):
            main()

        cli_client.create_comment.assert_called_once_with("42", 83, "<@Kai> late")
        assert "Added comment #6" in capsys.readouterr().err

    def test_add_blank_content(self, cli_client):
        with patch.object(sys, 'argv', ['vodreview', 'add', '42', '10', '   ']):
            with pytest.raises(SystemExit) as exc_info:
                main()
            assert exc_info.value.code == 1
        cli_client.create_comment.assert_not_called()

    def test_add_invalid_time(self, cli_client):
        with patch.object(sys, 'argv', ['vodreview', 'add', '42', '1:99', 'text']):
            with pytest.raises(SystemExit) as exc_info:
                main()
            assert exc_info.value.code == 1

    def test_add_requires_token(self):
        with patch.object(sys, 'argv', ['vodreview', 'add', '42', '10', 'text']):
            with patch('dotenv.load_dotenv'):
                with patch.dict(os.environ, {}, clear=True):
                    with patch('vodreview.store.CommentApiClient'):
                        with pytest.raises(SystemExit) as exc_info:
                            main()
                        assert exc_info.value.code == 1

    def test_client_from_flags_and_env(self):
        with patch.object(sys, 'argv', ['vodreview', '--api-url', 'http://bot:9', 'list', '42']):
            with patch('dotenv.load_dotenv'):
                with patch.dict(os.environ, {'VODREVIEW_TOKEN': 'tok'}):
                    with patch('vodreview.store.CommentApiClient') as mock_cls:
                        mock_cls.return_value.list_comments.return_value = []
                        main()
                        mock_cls.assert_called_once_with(base_url="http://bot:9", token="tok")

    def test_edit_time(self, cli_client, capsys):
        with patch.object(sys, 'argv', ['vodreview', 'edit', '7', '--time', '0:15']):
            main()

        cli_client.update_comment.assert_called_once_with(7, content=None, timestamp=15)
        assert "Updated comment #7" in capsys.readouterr().err

    def test_edit_nothing(self, cli_client):
        with patch.object(sys, 'argv', ['vodreview', 'edit', '7']):
            with pytest.raises(SystemExit) as exc_info:
                main()
            assert exc_info.value.code == 1
        cli_client.update_comment.assert_not_called()

    def test_delete(self, cli_client, capsys):
        with patch.object(sys, 'argv', ['vodreview', 'delete', '7']):
            main()

        cli_client.delete_comment.assert_called_once_with(7)
        assert "Deleted comment #7" in capsys.readouterr().err

    def test_delete_error(self, cli_client):
        cli_client.delete_comment.side_effect = CommentApiError("Comment not found")
        with patch.object(sys, 'argv', ['vodreview', 'delete', '7']):
            with pytest.raises(SystemExit) as exc_info:
                main()
            assert exc_info.value.code == 1


class TestPreviewCommand:
    """Tests for the highlight preview."""

    @pytest.fixture
    def preview_client(self):
        client = MagicMock()
        client.list_comments.return_value = [make_comment(1, 3, "<@Kai> late #rotate", user_name="jo")]
        client.list_mention_users.return_value = []
        with patch("vodreview.cli.make_client", return_value=client):
            yield client

    def test_highlight_and_expiry(self, preview_client, capsys):
        with patch.object(sys, 'argv', ['vodreview', 'preview', '42']):
            main()

        captured = capsys.readouterr()
        assert "[0:03] jo: @Kai late #rotate" in captured.err
        assert "[0:05] highlight cleared" in captured.err

    def test_pause(self, preview_client, capsys):
        with patch.object(sys, 'argv', ['vodreview', 'preview', '42', '--pause-at', '0:04', '--pause-for', '5']):
            main()

        captured = capsys.readouterr()
        assert "paused for 5s" in captured.err
        assert "highlight cleared" in captured.err

    def test_load_failure_exits(self, preview_client):
        preview_client.list_comments.side_effect = CommentApiError("Failed to load comments")
        with patch.object(sys, 'argv', ['vodreview', 'preview', '42']):
            with pytest.raises(SystemExit) as exc_info:
                main()
            assert exc_info.value.code == 1


class TestDisplayText:
    """Tests for rendering comments in the terminal."""

    def test_mentions_shown_with_at(self):
        assert display_text("<@Jo Jo> push #b") == "@Jo Jo push #b"
