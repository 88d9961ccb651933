"""Shared test fixtures and configuration"""
import os
import tempfile
from typing import Generator

import pytest
import yaml
from fastapi.testclient import TestClient

from claude_gateway.main import create_app
from claude_gateway.models.config import AppConfig

from tests.fakes import AUTH_TOKEN, FakeMessagesClient, RecordingReporter


@pytest.fixture
def test_config_dict() -> dict:
    """Sample configuration dictionary for testing"""
    return {
        'server': {
            'host': '127.0.0.1',
            'port': 18000,
            'api_key': AUTH_TOKEN,
        },
        'provider': {
            'kind': 'anthropic',
            'api_key': 'test-anthropic-key',
        },
        'verify_ssl': True,
        'max_retries': 0,
    }


@pytest.fixture
def test_config(test_config_dict: dict) -> AppConfig:
    """Sample AppConfig instance for testing"""
    return AppConfig(**test_config_dict)


@pytest.fixture
def test_config_file(test_config_dict: dict) -> Generator[str, None, None]:
    """Create a temporary config file for testing"""
    with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
        yaml.dump(test_config_dict, f)
        config_path = f.name

    yield config_path

    if os.path.exists(config_path):
        os.unlink(config_path)


@pytest.fixture
def fake_client() -> FakeMessagesClient:
    return FakeMessagesClient()


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def app(test_config: AppConfig, fake_client: FakeMessagesClient, reporter: RecordingReporter):
    """Application wired to the in-memory client and reporter"""
    return create_app(test_config, messages_client=fake_client, usage_reporter=reporter)


@pytest.fixture
def app_client(app) -> Generator[TestClient, None, None]:
    """FastAPI test client"""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def auth_headers() -> dict:
    return {'x-api-key': AUTH_TOKEN}


@pytest.fixture
def sample_messages_request() -> dict:
    """Sample Messages API request"""
    return {
        'model': 'claude-3-haiku-20240307',
        'max_tokens': 1024,
        'messages': [{'role': 'user', 'content': 'Hello!'}],
    }
