"""
Command-line interface for ADVDESK.
"""

import asyncio
from pathlib import Path
from typing import Optional

import click
import structlog

from advdesk.config import get_settings
from advdesk.logging_setup import configure_logging

logger = structlog.get_logger(__name__)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """ADVDESK: AI drafting pipelines for law offices."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    settings = get_settings()
    configure_logging("DEBUG" if debug else settings.log_level, settings.log_json)


# =========================================================================
# Server Commands
# =========================================================================


@cli.command()
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", default=None, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload")
def serve(host: Optional[str], port: Optional[int], reload: bool) -> None:
    """Start the API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    click.echo(f"Starting ADVDESK API server on {host}:{port}")

    uvicorn.run(
        "advdesk.api.main:app",
        host=host,
        port=port,
        reload=reload,
    )


# =========================================================================
# Document Commands
# =========================================================================


@cli.command()
@click.argument("text_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--title", required=True, help="Document title")
@click.option("--subtitle", default="", help="Line shown under the title")
@click.option("--office", default=None, help="Office name for the header")
@click.option("--oab", default=None, help="OAB number for the header")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Output .docx path")
def render(
    text_path: str,
    title: str,
    subtitle: str,
    office: Optional[str],
    oab: Optional[str],
    output: Optional[str],
) -> None:
    """Render a marker-formatted text file to DOCX."""
    from advdesk.models.tenant import OfficeSettings
    from advdesk.services.document_renderer import parse_sections, render_docx

    source = Path(text_path)
    text = source.read_text(encoding="utf-8")
    sections = parse_sections(text)

    data = render_docx(
        text,
        title,
        subtitle,
        OfficeSettings(name=office, oab_number=oab),
        get_settings().default_office_name,
    )
    output_path = Path(output) if output else source.with_suffix(".docx")
    output_path.write_bytes(data)

    click.echo(f"Sections: {len(sections)}")
    click.echo(f"Written: {output_path} ({len(data)} bytes)")


# =========================================================================
# Tenant Commands
# =========================================================================


@cli.command()
@click.argument("tenant_id", type=str)
@click.option("--area", default=None, help="Legal area tag")
def knowledge(tenant_id: str, area: Optional[str]) -> None:
    """Show the knowledge documents an AI stage would receive."""
    from advdesk.services.knowledge import get_knowledge_service

    async def resolve():
        service = get_knowledge_service()
        paths = await service.resolve(tenant_id, area)

        click.echo(f"\n=== Knowledge context for {tenant_id} ({area or 'any area'}) ===\n")
        if not paths:
            click.echo("No documents.")
            return
        for path in paths:
            click.echo(f"  {path}")

    asyncio.run(resolve())


@cli.command()
@click.argument("tenant_id", type=str)
@click.argument("email", type=str)
@click.option("--name", default="", help="Display name")
def create_admin(tenant_id: str, email: str, name: str) -> None:
    """Create an office administrator and print a bearer token."""
    from uuid import uuid4

    from advdesk.models.tenant import UserProfile, UserRole
    from advdesk.services.accounts import get_account_service
    from advdesk.storage.repositories import get_repository

    async def create():
        email_clean = email.strip().lower()
        profile = UserProfile(
            uid=uuid4().hex,
            tenant_id=tenant_id,
            email=email_clean,
            display_name=name or email_clean.split("@")[0],
            role=UserRole.ADMIN,
        )
        await get_repository().save_user(profile)
        return profile

    profile = asyncio.run(create())
    token = get_account_service().issue_token(profile.uid, ttl=24 * 3600)

    click.echo(f"Admin created: {profile.uid} ({profile.email})")
    click.echo(f"Token (24h): {token}")


@cli.command()
def health() -> None:
    """Check service health."""
    from advdesk.services.llm_service import get_llm_service
    from advdesk.services.multimodal_service import get_multimodal_service

    click.echo("\n=== Service Health Check ===\n")

    providers = {**get_llm_service().health_check(), **get_multimodal_service().health_check()}
    click.echo("AI Providers:")
    for provider, status in providers.items():
        status_str = "✓" if status else "✗"
        click.echo(f"  {provider}: {status_str}")

    settings = get_settings()
    if settings.storage_backend == "redis":
        from advdesk.storage.documents import get_document_store

        async def ping():
            store = get_document_store()
            try:
                return await store.health_check()
            finally:
                await store.close()

        status_str = "✓" if asyncio.run(ping()) else "✗"
        click.echo(f"\nRedis: {status_str}")

    click.echo(f"\nEnvironment: {settings.environment}")
    click.echo(f"Storage: {settings.storage_backend}")


# =========================================================================
# Config Commands
# =========================================================================


@cli.command()
def config() -> None:
    """Show current configuration."""
    settings = get_settings()

    click.echo("\n=== ADVDESK Configuration ===\n")
    click.echo(f"Environment: {settings.environment}")
    click.echo(f"Debug: {settings.debug}")
    click.echo(f"\nPrimary LLM: {settings.primary_llm_provider} ({settings.primary_llm_model})")
    click.echo(f"Fallback LLM: {settings.fallback_llm_provider} ({settings.fallback_llm_model})")
    click.echo(f"Chat LLM: {settings.chat_llm_model}")
    click.echo(f"Multimodal: {settings.multimodal_model}")
    click.echo(f"\nStorage: {settings.storage_backend}")
    click.echo(f"Blob root: {settings.blob_root}")
    click.echo("\nRate limits (per hour):")
    for action, limit in settings.rate_limits.items():
        click.echo(f"  {action}: {limit}")


def main() -> None:
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
