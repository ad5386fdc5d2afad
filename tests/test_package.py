# tests/test_package.py
"""Tests for top-level package API."""

import pytest


class TestPackageImports:
    """Verify the public API surface."""

    def test_version(self):
        import schemamend
        assert hasattr(schemamend, "__version__")
        assert schemamend.__version__.startswith("1.")

    def test_public_names_resolve(self):
        import schemamend
        for name in schemamend.__all__:
            assert getattr(schemamend, name) is not None

    def test_config_importable(self):
        from schemamend.config import SchemamendConfig, get_config
        assert SchemamendConfig is not None
        assert callable(get_config)

    def test_cli_importable(self):
        from schemamend.cli import cli
        assert callable(cli)

    def test_error_hierarchy(self):
        from schemamend import (
            CoercionDepthExceeded,
            FinalDecodeFailure,
            NoDocumentFound,
            ParseFailure,
            RecoveryError,
            SchemaDefinitionError,
            SchemamendError,
            StructuralCoercionFailure,
        )
        for exc in (NoDocumentFound, ParseFailure, StructuralCoercionFailure, FinalDecodeFailure):
            assert issubclass(exc, RecoveryError)
        assert issubclass(CoercionDepthExceeded, StructuralCoercionFailure)
        assert issubclass(RecoveryError, SchemamendError)
        assert issubclass(SchemaDefinitionError, SchemamendError)
        assert not issubclass(SchemaDefinitionError, RecoveryError)
        assert [e.stage for e in (NoDocumentFound, ParseFailure, StructuralCoercionFailure, FinalDecodeFailure)] == [
            "extract", "parse", "coerce", "decode",
        ]
