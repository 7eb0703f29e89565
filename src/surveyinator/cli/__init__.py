"""CLI commands for Surveyinator."""

import csv
import secrets
import sys

import click
import uvicorn

from ..api import create_app
from ..auth.tokens import hash_access_code, issue_session_token
from ..config import SurveyConfig, parse_origins, DEFAULT_DB_PATH, DEFAULT_HOST, DEFAULT_PORT
from ..database import SurveyRepository, create_database_engine
from ..database.repository import VOTE_COLUMNS
from ..errors import ConfigError
from ..logging import setup_logging, get_logger, anonymize_code_hash
from ..survey.access import parse_expires_at

logger = get_logger(__name__)


def _open_repo(db_path: str, require_encryption: bool = False) -> SurveyRepository:
    engine = create_database_engine(db_path, require_encryption=require_encryption)
    return SurveyRepository(engine)


@click.group()
@click.pass_context
def cli(ctx):
    """Surveyinator - access-code gated pairwise preference survey."""
    ctx.ensure_object(dict)
    setup_logging()


@cli.command()
@click.option('--db-path', envvar='DB_PATH', default=DEFAULT_DB_PATH)
@click.option('--token-secret', envvar='TOKEN_SECRET', required=True)
@click.option('--allowed-origins', envvar='ALLOWED_ORIGINS', default='')
@click.option('--host', envvar='HOST', default=DEFAULT_HOST)
@click.option('--port', envvar='PORT', default=DEFAULT_PORT, type=int)
@click.option('--token-ttl-hours', envvar='TOKEN_TTL_HOURS', default=12.0, type=float)
@click.option('--require-encryption/--no-require-encryption', envvar='REQUIRE_ENCRYPTION', default=False)
def serve(db_path, token_secret, allowed_origins, host, port, token_ttl_hours, require_encryption):
    """Run the survey API server."""
    try:
        config = SurveyConfig(
            token_secret=token_secret,
            allowed_origins=parse_origins(allowed_origins),
            db_path=db_path,
            require_encryption=require_encryption,
            token_ttl_hours=token_ttl_hours,
            host=host,
            port=port,
        )
        app = create_app(config)
    except (ConfigError, ImportError) as e:
        click.echo(f"Error: {e}")
        sys.exit(1)

    if not config.allowed_origins:
        click.echo("Warning: ALLOWED_ORIGINS is empty, every browser request will be rejected.")

    click.echo("Starting Surveyinator API...")
    click.echo(f"  Database: {db_path}")
    click.echo(f"  Listening: {host}:{port}")
    click.echo(f"  Origins: {', '.join(config.allowed_origins) or '(none)'}")

    uvicorn.run(app, host=host, port=port, log_config=None)


@cli.command('init-db')
@click.option('--db-path', envvar='DB_PATH', default=DEFAULT_DB_PATH)
def init_db(db_path):
    """Create the access_codes and votes tables."""
    _open_repo(db_path)
    click.echo(f"Database ready: {db_path}")


@cli.command('add-code')
@click.option('--db-path', envvar='DB_PATH', default=DEFAULT_DB_PATH)
@click.option('--code', default=None, help='Code to register (generated if omitted).')
@click.option('--uses', type=int, default=None, help='Number of redemptions (unlimited if omitted).')
@click.option('--expires', default=None, help='ISO-8601 expiry, e.g. 2026-12-31T23:59:59Z.')
@click.option('--label', default=None, help='Operator note, e.g. cohort name.')
def add_code(db_path, code, uses, expires, label):
    """Register an access code. Only its hash is stored."""
    if uses is not None and uses < 0:
        raise click.BadParameter("must be zero or more", param_hint="--uses")
    if expires:
        try:
            parse_expires_at(expires)
        except (ValueError, OverflowError):
            raise click.BadParameter(f"not an ISO-8601 timestamp: {expires}", param_hint="--expires")

    code = (code or secrets.token_urlsafe(9)).strip()
    if not code:
        raise click.BadParameter("must not be blank", param_hint="--code")

    repo = _open_repo(db_path)
    code_hash = hash_access_code(code)
    repo.create_access_code(code_hash, uses_remaining=uses, expires_at=expires, label=label)

    click.echo(f"Access code: {code}")
    click.echo(f"  Hash: {code_hash}")
    click.echo(f"  Uses: {'unlimited' if uses is None else uses}")
    click.echo(f"  Expires: {expires or 'never'}")
    click.echo("Store the code now; it cannot be recovered from the database.")


@cli.command('deactivate-code')
@click.option('--db-path', envvar='DB_PATH', default=DEFAULT_DB_PATH)
@click.option('--code', default=None, help='Plaintext code.')
@click.option('--hash', 'code_hash', default=None, help='Code hash, if the plaintext is lost.')
def deactivate_code(db_path, code, code_hash):
    """Deactivate an access code."""
    if not code and not code_hash:
        raise click.UsageError("Pass --code or --hash")
    code_hash = code_hash or hash_access_code(code.strip())

    repo = _open_repo(db_path)
    if repo.set_access_code_active(code_hash, False):
        click.echo(f"Deactivated {anonymize_code_hash(code_hash)}")
    else:
        click.echo("No such access code.")
        sys.exit(1)


@cli.command('list-codes')
@click.option('--db-path', envvar='DB_PATH', default=DEFAULT_DB_PATH)
@click.option('--active-only', is_flag=True)
def list_codes(db_path, active_only):
    """List access codes (hash prefix, status, remaining uses)."""
    repo = _open_repo(db_path)
    codes = repo.list_access_codes(active_only=active_only)
    if not codes:
        click.echo("No access codes.")
        return

    for c in codes:
        status = "active" if c.active else "inactive"
        uses = "unlimited" if c.uses_remaining is None else c.uses_remaining
        click.echo(
            f"{c.code_hash[:12]}  {status:8}  uses={uses}  "
            f"expires={c.expires_at or 'never'}  {c.label or ''}".rstrip()
        )


@cli.command('export-votes')
@click.option('--db-path', envvar='DB_PATH', default=DEFAULT_DB_PATH)
@click.option('--participant', default=None)
@click.option('--component', default=None)
@click.option('--output', '-o', type=click.File('w'), default='-')
def export_votes(db_path, participant, component, output):
    """Export votes as CSV."""
    repo = _open_repo(db_path)
    votes = repo.get_votes(participant_id=participant, component=component)

    writer = csv.writer(output)
    writer.writerow(("id",) + VOTE_COLUMNS)
    for v in votes:
        writer.writerow([v.id] + [getattr(v, column) for column in VOTE_COLUMNS])


@cli.command('issue-token')
@click.option('--token-secret', envvar='TOKEN_SECRET', required=True)
@click.option('--code', required=True, help='Plaintext code to embed (not checked against the DB).')
@click.option('--ttl-hours', type=float, default=12.0)
def issue_token(token_secret, code, ttl_hours):
    """Print a session token for smoke-testing a deployment."""
    click.echo(issue_session_token(token_secret, hash_access_code(code.strip()), ttl_hours=ttl_hours))


def main():
    cli()


if __name__ == "__main__":
    main()
