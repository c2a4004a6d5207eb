"""
Test suite for Renderer template service.

- Template environment initialization
- Async template rendering
- Error handling for missing templates
- The shipped OTP email templates

Run all tests:
    pytest tests/services/test_template.py -v
"""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from jinja2 import TemplateNotFound

from app.core.services.template import Renderer

TEMPLATE_DIR = Path(__file__).resolve().parents[2] / "app" / "templates"


@pytest.fixture(autouse=True)
def restore_environment():
    original = Renderer._env
    yield
    Renderer._env = original


def mock_environment(rendered: str = "") -> tuple[MagicMock, AsyncMock]:
    mock_env = MagicMock()
    mock_template = AsyncMock()
    mock_template.render_async = AsyncMock(return_value=rendered)
    mock_env.get_template.return_value = mock_template
    return mock_env, mock_template


class TestRendererInitialization:

    def test_initialize_sets_environment(self):
        with patch("app.core.services.template.Environment") as mock_env_class:
            Renderer.initialize(template_dir="/templates")

            mock_env_class.assert_called_once()
            assert Renderer._env == mock_env_class.return_value

    def test_initialize_with_file_system_loader(self):
        with patch("app.core.services.template.FileSystemLoader") as mock_loader:
            Renderer.initialize(template_dir="/path/to/templates")

            mock_loader.assert_called_once_with("/path/to/templates")

    def test_initialize_enables_autoescape_and_async(self):
        with patch("app.core.services.template.Environment") as mock_env_class:
            Renderer.initialize(template_dir="/templates")

            call_kwargs = mock_env_class.call_args[1]
            assert call_kwargs["autoescape"] is True
            assert call_kwargs["enable_async"] is True

    def test_is_initialized(self):
        Renderer._env = None
        assert Renderer.is_initialized() is False

        Renderer.initialize(template_dir=str(TEMPLATE_DIR))
        assert Renderer.is_initialized() is True


class TestRendererRenderTemplate:

    @pytest.mark.asyncio
    async def test_render_template_basic(self):
        mock_env, mock_template = mock_environment("<h1>Test</h1>")
        Renderer._env = mock_env

        result = await Renderer.render_template("test.html")

        assert result == "<h1>Test</h1>"
        mock_env.get_template.assert_called_once_with("test.html")
        mock_template.render_async.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_render_template_with_context(self):
        mock_env, mock_template = mock_environment("<h1>Hello, John</h1>")
        Renderer._env = mock_env

        result = await Renderer.render_template("greeting.html", {"name": "John"})

        assert result == "<h1>Hello, John</h1>"
        mock_template.render_async.assert_called_once_with(name="John")

    @pytest.mark.asyncio
    async def test_render_template_raises_not_found(self):
        mock_env = MagicMock()
        mock_env.get_template.side_effect = TemplateNotFound("missing.html")
        Renderer._env = mock_env

        with pytest.raises(TemplateNotFound):
            await Renderer.render_template("missing.html")

    @pytest.mark.asyncio
    async def test_render_template_requires_initialization(self):
        Renderer._env = None

        with pytest.raises(RuntimeError):
            await Renderer.render_template("otp_email.html")


class TestRendererIntegration:

    @pytest.mark.asyncio
    async def test_full_initialization_and_render_flow(self, tmp_path):
        (tmp_path / "test.html").write_text("<h1>Hello, {{ name }}!</h1>")
        Renderer.initialize(template_dir=str(tmp_path))

        result = await Renderer.render_template("test.html", {"name": "World"})

        assert result == "<h1>Hello, World!</h1>"

    @pytest.mark.asyncio
    async def test_autoescape_prevents_xss(self, tmp_path):
        (tmp_path / "xss_test.html").write_text("<p>{{ user_input }}</p>")
        Renderer.initialize(template_dir=str(tmp_path))

        result = await Renderer.render_template(
            "xss_test.html", {"user_input": "<script>alert('XSS')</script>"}
        )

        assert "&lt;script&gt;" in result
        assert "<script>" not in result

    @pytest.mark.asyncio
    @pytest.mark.parametrize("template_name", ["otp_email.html", "otp_email.txt"])
    async def test_otp_templates_render_context(self, template_name):
        Renderer.initialize(template_dir=str(TEMPLATE_DIR))

        result = await Renderer.render_template(
            template_name,
            {
                "app_name": "Company Registry",
                "user_name": "Jane",
                "otp": "482913",
                "expiry_minutes": 5,
                "year": 2026,
            },
        )

        assert "482913" in result
        assert "Hello Jane" in result
        assert "expire in" in result
        assert "2026 Company Registry" in result
