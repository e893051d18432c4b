"""
Tests for configuration settings
"""

import pytest
from pydantic import ValidationError

from src.config import LineageConfig, Settings


class TestSettings:
    """Test application settings validation."""

    @pytest.mark.parametrize("backend", ["memory", "sql"])
    def test_known_backends(self, backend):
        assert Settings(relation_backend=backend).relation_backend == backend

    @pytest.mark.parametrize("backend", ["SQL", "postgres", ""])
    def test_unknown_backend_rejected(self, backend):
        """A misspelt backend fails at startup instead of falling back to memory."""
        with pytest.raises(ValidationError):
            Settings(relation_backend=backend)


class TestLineageConfig:
    """Test lineage traversal and identifier settings."""

    def test_defaults(self):
        config = LineageConfig()
        assert config.uid_random_length >= 10
        assert config.trace_max_nodes >= 1

    def test_random_length_floor(self):
        with pytest.raises(ValidationError):
            LineageConfig(uid_random_length=9)
