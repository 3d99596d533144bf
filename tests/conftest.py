"""Shared fixtures for the tf-portal test suite."""

import pytest

from tfportal.core.config import Settings
from tfportal.core.factory import ComponentFactory


@pytest.fixture
def settings(tmp_path):
    """Settings writing into a per-test directory."""
    return Settings(
        output_path=tmp_path / "out" / "main.tf",
        log_dir=tmp_path / "logs",
        state_bucket="terraform-state-test",
    )


@pytest.fixture
def factory(settings):
    """Component factory built from test settings."""
    return ComponentFactory(settings)


@pytest.fixture
def synthesizer(factory):
    """Fully wired synthesizer."""
    return factory.get_synthesizer()


@pytest.fixture
def base_form():
    """Scenario 1 submission: single AWS instance in auto subnet mode."""
    return {
        "provider": "aws",
        "topology": "single-instance",
        "serverName": "web1",
        "instanceType": "t3.micro",
        "region": "",
        "sgName": "sg-web",
        "subnetMode": "auto",
    }
