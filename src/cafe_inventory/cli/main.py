import asyncio
import logging
import typer
from tortoise import Tortoise
from typing import Optional

from cafe_inventory.common.snapshot import FileSnapshotStore
from cafe_inventory.core import config
from cafe_inventory.core.container import AppContainer
from cafe_inventory.features.notifications.schemas import EmailSettings
from cafe_inventory.features.notifications.settings import EmailSettingsRepository
from cafe_inventory.features.state.tombstones import TombstoneKind
from cafe_inventory.features.sync.remote import TortoiseGateway
from cafe_inventory.features.sync.schemas import SyncResult

logger = logging.getLogger(__name__)

app = typer.Typer(name="cafe-inventory", help="CLI for syncing and inspecting the cafe inventory data.")

SnapshotDirOption = typer.Option(config.SNAPSHOT_DIR, "--snapshot-dir", help="Directory holding the local snapshot.")
RemoteUrlOption = typer.Option(
    config.REMOTE_DATABASE_URL, "--remote-url", help="Tortoise connection URL of the remote store."
)


# Shared async context manager for the remote store connection
class DBConnection:
    def __init__(self, db_url: str, generate_schemas: bool = False):
        self.db_url = db_url
        self.generate_schemas = generate_schemas

    async def __aenter__(self):
        await Tortoise.init(config=config.tortoise_config(self.db_url))
        if self.generate_schemas:
            await Tortoise.generate_schemas(safe=True)  # Create tables that don't exist yet
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await Tortoise.close_connections()


def _require_remote(remote_url: Optional[str]) -> str:
    if not remote_url:
        typer.secho(
            "Error: no remote store configured. Pass --remote-url or set REMOTE_DATABASE_URL.", fg=typer.colors.RED
        )
        raise typer.Exit(code=1)
    return remote_url


def _report(result: SyncResult) -> None:
    if result.ok:
        typer.secho(result.message, fg=typer.colors.GREEN)
        return
    typer.secho(result.message, fg=typer.colors.RED)
    for failure in result.push_failures:
        typer.echo(f"  - {failure}")
    raise typer.Exit(code=1)


@app.command("sync")
def sync_command(snapshot_dir: str = SnapshotDirOption, remote_url: Optional[str] = RemoteUrlOption):
    """Push local changes to the remote store, then pull the merged dataset."""
    asyncio.run(_sync(snapshot_dir, remote_url, pull_first=False))


@app.command("pull")
def pull_command(snapshot_dir: str = SnapshotDirOption, remote_url: Optional[str] = RemoteUrlOption):
    """Replace local data with the remote dataset without uploading anything."""
    asyncio.run(_sync(snapshot_dir, remote_url, pull_first=True))


async def _sync(snapshot_dir: str, remote_url: Optional[str], pull_first: bool):
    """Async implementation shared by sync and pull."""
    remote_url = _require_remote(remote_url)
    async with DBConnection(remote_url):
        container = AppContainer(FileSnapshotStore(snapshot_dir), gateway=TortoiseGateway())
        if container.store.state.has_active_draft and not pull_first:
            typer.secho(
                "Warning: a counting session is in progress; its items will be pushed too.", fg=typer.colors.YELLOW
            )
        result = await container.engine.reconcile(pull_first=pull_first)
    _report(result)


@app.command("status")
def status_command(snapshot_dir: str = SnapshotDirOption, remote_url: Optional[str] = RemoteUrlOption):
    """Shows what the local snapshot holds."""
    container = AppContainer(FileSnapshotStore(snapshot_dir))
    state = container.store.state

    typer.echo(f"Snapshot: {snapshot_dir}")
    typer.echo(f"Remote store: {'configured' if remote_url else 'not configured'}")
    for name, count in state.counts().items():
        typer.echo(f"  {name}: {count}")
    for kind in TombstoneKind:
        deleted = container.ledger.deleted_ids(kind)
        if deleted:
            typer.echo(f"  deleted {kind.value}: {len(deleted)}")

    session = state.current_session
    if session is None:
        typer.echo("No counting session in progress.")
    else:
        label = "submitted" if session.is_submitted else "draft"
        typer.echo(f"Current session: {session.id} ({label}) by {session.user_name}, {len(session.items)} item(s)")


@app.command("init-remote")
def init_remote_command(remote_url: Optional[str] = RemoteUrlOption):
    """Creates the remote tables if they don't exist."""
    asyncio.run(_init_remote(remote_url))


async def _init_remote(remote_url: Optional[str]):
    remote_url = _require_remote(remote_url)
    async with DBConnection(remote_url, generate_schemas=True):
        typer.secho("Remote schema is up to date.", fg=typer.colors.GREEN)


# Settings commands
settings_app = typer.Typer(name="settings", help="Manage notification settings.")
app.add_typer(settings_app)


@settings_app.command("set-email")
def set_email_command(
    service_id: str = typer.Option(..., prompt=True, help="EmailJS service id."),
    template_id: str = typer.Option(..., prompt=True, help="EmailJS template id."),
    public_key: str = typer.Option(..., prompt=True, hide_input=True, help="EmailJS public key."),
    snapshot_dir: str = SnapshotDirOption,
):
    """Stores the order email credentials locally; the next sync shares them."""
    repository = EmailSettingsRepository(FileSnapshotStore(snapshot_dir))
    repository.save(EmailSettings(service_id=service_id, template_id=template_id, public_key=public_key))
    typer.secho("Email settings saved.", fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()
