"""
Command-line interface for vcs-bridge.
"""
import click
import sys
from datetime import datetime, timezone
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import print as rprint
from rich.progress import Progress, SpinnerColumn, TextColumn

from vcs_bridge import __version__
from vcs_bridge.config import get_settings
from vcs_bridge.core import (
    CommitInfo,
    CommitStatus,
    Context,
    Permission,
    WebhookEvent,
)
from vcs_bridge.adapters import AdapterFactory, PlatformType
from vcs_bridge.utils import get_logger

console = Console()
logger = get_logger(__name__)

EVENT_CHOICES = [event.value for event in WebhookEvent]
STATUS_CHOICES = [status.value for status in CommitStatus]


class CliState:
    """Global options shared by every command."""

    def __init__(self, platform, endpoint, token, username, timeout, deadline):
        self.platform = platform
        self.endpoint = endpoint
        self.token = token
        self.username = username
        self.timeout = timeout
        self.deadline = deadline

    def adapter(self):
        """Build the adapter selected by the global options."""
        kwargs = {}
        if self.timeout is not None:
            kwargs['timeout'] = self.timeout
        return AdapterFactory.create_adapter(
            self.platform,
            token=self.token,
            api_endpoint=self.endpoint,
            username=self.username,
            **kwargs
        )

    def context(self) -> Context:
        return Context(timeout=self.deadline)

    def target(self, repository: str):
        """Build the adapter and split "owner/repo"."""
        adapter = self.adapter()
        owner, name = adapter.parse_repository(repository)
        return adapter, owner, name


pass_state = click.make_pass_decorator(CliState)


def _fail(message: str) -> None:
    rprint(f"[red]❌ Error: {message}[/red]")
    sys.exit(1)


def _format_timestamp(timestamp: int) -> str:
    if not timestamp:
        return "-"
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')


def _show_commit(commit: CommitInfo, title: str) -> None:
    if commit.is_empty:
        rprint("[yellow]⚠️  No commits found[/yellow]")
        return

    first_line = commit.message.split("\n")[0]
    parents = ", ".join(h[:8] for h in commit.parent_hashes) or "-"
    info_text = f"""[cyan]Hash:[/cyan] {commit.hash}
[cyan]Author:[/cyan] {commit.author_name}
[cyan]Committer:[/cyan] {commit.committer_name}
[cyan]Date:[/cyan] {_format_timestamp(commit.timestamp)}
[cyan]Parents:[/cyan] {parents}
[cyan]URL:[/cyan] {commit.url}
[cyan]Message:[/cyan] {first_line}"""

    rprint(Panel(info_text, border_style="blue", title=title))


@click.group()
@click.version_option(version=__version__)
@click.option(
    '--platform', '-p',
    type=click.Choice([p.value for p in PlatformType]),
    default=PlatformType.GITHUB.value,
    show_default=True,
    help='Hosting platform'
)
@click.option('--endpoint', help='API endpoint (defaults to the platform setting)')
@click.option('--token', envvar='VCS_TOKEN', help='Access token (defaults to the platform setting)')
@click.option('--username', help='Username, for platforms that need one')
@click.option('--timeout', type=int, help='Per-request timeout in seconds')
@click.option('--deadline', type=float, help='Give up on the whole command after this many seconds')
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def main(ctx, platform, endpoint, token, username, timeout, deadline, debug):
    """Work with GitHub and GitLab through one interface."""
    if debug:
        import logging
        logging.getLogger("vcs_bridge").setLevel(logging.DEBUG)

    ctx.obj = CliState(platform, endpoint, token, username, timeout, deadline)


@main.command()
@click.option(
    "--config",
    "-c",
    help="Path to configuration file",
    type=click.Path(exists=True)
)
@click.option(
    "--validate",
    "-v",
    is_flag=True,
    help="Validate configuration"
)
def config(config: str, validate: bool):
    """Show and validate configuration."""
    try:
        settings = get_settings(config, reload=config is not None)

        if validate:
            errors = settings.validate()
            if errors:
                rprint("[red]❌ Configuration validation failed:[/red]")
                for error in errors:
                    rprint(f"  • {error}")
                sys.exit(1)
            else:
                rprint("[green]✅ Configuration is valid![/green]")
                return

        rprint(Panel.fit(
            "[bold blue]vcs-bridge Configuration[/bold blue]",
            border_style="blue"
        ))

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Setting", style="cyan", width=40)
        table.add_column("Value", style="green")

        for section_name, section_data in settings.to_dict().items():
            for key, value in section_data.items():
                table.add_row(f"{section_name}.{key}", str(value))

        console.print(table)

    except Exception as e:
        _fail(str(e))


@main.command('test-connection')
@pass_state
def test_connection(state: CliState):
    """Check the endpoint and credentials."""
    try:
        adapter = state.adapter()
        adapter.test_connection(ctx=state.context())
        rprint(f"[green]✓ Connected to {state.platform}[/green]")
    except Exception as e:
        _fail(str(e))


@main.command()
@pass_state
def repos(state: CliState):
    """List repositories visible to the token."""
    try:
        adapter = state.adapter()

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Fetching repositories...", total=None)
            results = adapter.list_repositories(ctx=state.context())
            progress.update(task, completed=True)

        if not results:
            rprint("[yellow]⚠️  No repositories found[/yellow]")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Owner", style="cyan")
        table.add_column("Repositories", style="green")
        for owner in sorted(results):
            table.add_row(owner, ", ".join(results[owner]))
        console.print(table)

    except Exception as e:
        _fail(str(e))


@main.command()
@click.argument('repository')
@pass_state
def branches(state: CliState, repository: str):
    """List branches of REPOSITORY (owner/repo)."""
    try:
        adapter, owner, name = state.target(repository)
        names = adapter.list_branches(owner, name, ctx=state.context())

        rprint(f"[bold]Branches of {owner}/{name}[/bold] ({len(names)})")
        for branch in names:
            rprint(f"  • {branch}")

    except Exception as e:
        _fail(str(e))


@main.command('repo-info')
@click.argument('repository')
@pass_state
def repo_info(state: CliState, repository: str):
    """Show clone URLs of REPOSITORY."""
    try:
        adapter, owner, name = state.target(repository)
        info = adapter.get_repository_info(owner, name, ctx=state.context())

        rprint(Panel(
            f"[cyan]HTTP:[/cyan] {info.clone_info.http}\n"
            f"[cyan]SSH:[/cyan]  {info.clone_info.ssh}",
            border_style="blue",
            title=f"{owner}/{name}"
        ))

    except Exception as e:
        _fail(str(e))


@main.command('latest-commit')
@click.argument('repository')
@click.option('--branch', '-b', default='main', show_default=True, help='Branch name')
@pass_state
def latest_commit(state: CliState, repository: str, branch: str):
    """Show the latest commit of a branch."""
    try:
        adapter, owner, name = state.target(repository)
        commit = adapter.get_latest_commit(owner, name, branch, ctx=state.context())
        _show_commit(commit, f"{owner}/{name}@{branch}")
    except Exception as e:
        _fail(str(e))


@main.command()
@click.argument('repository')
@click.argument('sha')
@pass_state
def commit(state: CliState, repository: str, sha: str):
    """Show one commit of REPOSITORY by SHA."""
    try:
        adapter, owner, name = state.target(repository)
        info = adapter.get_commit_by_sha(owner, name, sha, ctx=state.context())
        _show_commit(info, f"{owner}/{name}")
    except Exception as e:
        _fail(str(e))


@main.command('set-status')
@click.argument('repository')
@click.argument('ref')
@click.option('--status', '-s', type=click.Choice(STATUS_CHOICES), required=True)
@click.option('--title', '-t', default='vcs-bridge', show_default=True, help='Status context/name')
@click.option('--description', '-d', default='', help='Short description')
@click.option('--url', 'details_url', default='', help='Details URL')
@pass_state
def set_status(state, repository, ref, status, title, description, details_url):
    """Attach a status to commit REF."""
    try:
        adapter, owner, name = state.target(repository)
        adapter.set_commit_status(
            CommitStatus(status), owner, name, ref, title, description, details_url,
            ctx=state.context()
        )
        rprint(f"[green]✓ Status '{status}' set on {ref[:8]}[/green]")
    except Exception as e:
        _fail(str(e))


@main.command()
@click.argument('repository')
@click.argument('destination', type=click.Path(file_okay=False))
@click.option('--branch', '-b', default='', help='Branch (defaults to the default branch)')
@pass_state
def download(state: CliState, repository: str, destination: str, branch: str):
    """Download and extract REPOSITORY into DESTINATION."""
    try:
        adapter, owner, name = state.target(repository)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task(f"Downloading {owner}/{name}...", total=None)
            adapter.download_repository(owner, name, branch, destination, ctx=state.context())
            progress.update(task, completed=True)

        rprint(f"[green]✓ Extracted into {destination}[/green]")
    except Exception as e:
        _fail(str(e))


@main.command('create-pr')
@click.argument('repository')
@click.option('--source', required=True, help='Source branch')
@click.option('--target', required=True, help='Target branch')
@click.option('--title', '-t', required=True, help='Pull request title')
@click.option('--description', '-d', default='', help='Pull request description')
@pass_state
def create_pr(state, repository, source, target, title, description):
    """Open a pull (merge) request."""
    try:
        adapter, owner, name = state.target(repository)
        adapter.create_pull_request(
            owner, name, source, target, title, description, ctx=state.context()
        )
        rprint(f"[green]✓ Pull request {source} → {target} created[/green]")
    except Exception as e:
        _fail(str(e))


@main.command('add-deploy-key')
@click.argument('repository')
@click.argument('key_file', type=click.File('r'))
@click.option('--name', 'key_name', required=True, help='Key title')
@click.option('--read-write', is_flag=True, help='Allow pushes with this key')
@pass_state
def add_deploy_key(state, repository, key_file, key_name, read_write):
    """Register the public key in KEY_FILE as a deploy key."""
    try:
        adapter, owner, name = state.target(repository)
        permission = Permission.READ_WRITE if read_write else Permission.READ_ONLY
        adapter.add_ssh_key_to_repository(
            owner, name, key_name, key_file.read().strip(), permission,
            ctx=state.context()
        )
        rprint(f"[green]✓ Deploy key '{key_name}' added ({permission.value})[/green]")
    except Exception as e:
        _fail(str(e))


@main.group()
def webhook():
    """Manage repository webhooks."""
    pass


def _events(values):
    return [WebhookEvent(value) for value in (values or EVENT_CHOICES)]


@webhook.command('create')
@click.argument('repository')
@click.argument('payload_url')
@click.option('--branch', '-b', default='', help='Push branch filter (GitLab)')
@click.option('--event', '-e', 'events', multiple=True, type=click.Choice(EVENT_CHOICES),
              help='Event to subscribe to (default: all)')
@pass_state
def webhook_create(state, repository, payload_url, branch, events):
    """Create a webhook delivering to PAYLOAD_URL."""
    try:
        adapter, owner, name = state.target(repository)
        info = adapter.create_webhook(
            owner, name, branch, payload_url, *_events(events), ctx=state.context()
        )

        rprint("[green]✓ Webhook created[/green]")
        rprint(f"[cyan]ID:[/cyan] {info.id}")
        rprint(f"[cyan]Secret:[/cyan] {info.secret}")
    except Exception as e:
        _fail(str(e))


@webhook.command('update')
@click.argument('repository')
@click.argument('webhook_id')
@click.argument('payload_url')
@click.option('--secret', required=True, help='Shared secret to configure')
@click.option('--branch', '-b', default='', help='Push branch filter (GitLab)')
@click.option('--event', '-e', 'events', multiple=True, type=click.Choice(EVENT_CHOICES),
              help='Event to subscribe to (default: all)')
@pass_state
def webhook_update(state, repository, webhook_id, payload_url, secret, branch, events):
    """Re-apply the configuration of webhook WEBHOOK_ID."""
    try:
        adapter, owner, name = state.target(repository)
        adapter.update_webhook(
            owner, name, branch, payload_url, secret, webhook_id, *_events(events),
            ctx=state.context()
        )
        rprint(f"[green]✓ Webhook {webhook_id} updated[/green]")
    except Exception as e:
        _fail(str(e))


@webhook.command('delete')
@click.argument('repository')
@click.argument('webhook_id')
@pass_state
def webhook_delete(state, repository, webhook_id):
    """Delete webhook WEBHOOK_ID."""
    try:
        adapter, owner, name = state.target(repository)
        adapter.delete_webhook(owner, name, webhook_id, ctx=state.context())
        rprint(f"[green]✓ Webhook {webhook_id} deleted[/green]")
    except Exception as e:
        _fail(str(e))


if __name__ == "__main__":
    main()
