from jinja2 import Environment, FileSystemLoader


class Renderer:
    """Jinja2 renderer for email bodies, configured once at startup."""

    _env: Environment | None = None

    @classmethod
    def initialize(cls, template_dir: str) -> None:
        """
        Point the renderer at a template directory.

        Autoescaping is enabled, so values such as user names are HTML-escaped
        in ``.html`` templates.

        Args:
            template_dir (str): Directory holding the template files.
        """
        cls._env = Environment(
            loader=FileSystemLoader(template_dir), autoescape=True, enable_async=True
        )

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._env is not None

    @classmethod
    async def render_template(
        cls, template_name: str, context: dict | None = None
    ) -> str:
        """
        Render ``template_name`` with ``context``.

        Raises:
            RuntimeError: If :meth:`initialize` was not called.
            TemplateNotFound: If the template does not exist.
        """
        if cls._env is None:
            raise RuntimeError("Renderer not initialized. Call initialize() first.")
        template = cls._env.get_template(template_name)
        return await template.render_async(**(context or {}))


__all__ = ["Renderer"]
