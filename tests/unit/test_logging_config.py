"""
Tests for root logger configuration
"""
import logging
from dataclasses import replace
from unittest.mock import MagicMock, patch

import pytest

from submission_api.config import load_settings
from submission_api.utils import logging_config


@pytest.fixture(autouse=True)
def isolated_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    logging_config._installed.clear()
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging_config._installed.clear()


class TestConfigureLogging:
    def test_stream_handler_installed_once(self, monkeypatch):
        monkeypatch.delenv("CLOUDWATCH_LOG_GROUP", raising=False)
        settings = replace(load_settings(), log_level="DEBUG")
        before = len(logging.getLogger().handlers)

        logging_config.configure_logging(settings)
        logging_config.configure_logging(settings)

        assert len(logging.getLogger().handlers) == before + 1
        assert logging.getLogger().level == logging.DEBUG

    @patch("submission_api.utils.logging_config.watchtower.CloudWatchLogHandler")
    def test_cloudwatch_handler_when_log_group_set(self, mock_handler_cls):
        mock_handler_cls.return_value = MagicMock(level=logging.NOTSET)
        settings = replace(load_settings(), cloudwatch_log_group="/judge/submissions")

        logging_config.configure_logging(settings)
        logging_config.configure_logging(settings)

        mock_handler_cls.assert_called_once_with(log_group_name="/judge/submissions")
        assert mock_handler_cls.return_value in logging.getLogger().handlers

    @patch("submission_api.utils.logging_config.watchtower.CloudWatchLogHandler")
    def test_no_cloudwatch_without_log_group(self, mock_handler_cls):
        settings = replace(load_settings(), cloudwatch_log_group=None)
        logging_config.configure_logging(settings)
        mock_handler_cls.assert_not_called()
