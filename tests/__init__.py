"""Unit tests for TransJudge.

This package contains test modules for the translation backends, orchestration, model lifecycle and judge.
Tests use pytest with asyncio support and mock HTTP/network calls via monkeypatch.
"""
