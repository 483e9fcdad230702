#!/usr/bin/env python3
import json
import logging

import click
import requests
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from config import CLIConfig
from infisical_api import (
    EncryptionAlgorithm,
    InfisicalClient,
    InfisicalError,
    KeyUsage,
    NotFoundError,
    SigningAlgorithm,
    __version__,
    decode_base64,
    encode_base64,
)

console = Console()

CLIENT_ERRORS = (InfisicalError, requests.RequestException)


def get_client() -> InfisicalClient:
    """Get a logged-in API client from stored credentials"""
    client_id = CLIConfig.get_client_id()
    client_secret = CLIConfig.get_client_secret()

    if not client_id or not client_secret:
        console.print("[red]Error: Not authenticated. Run 'infisical-api login' first.[/red]")
        raise click.Abort()

    client = InfisicalClient(CLIConfig.get_api_url())
    try:
        client.login_universal_auth(client_id, client_secret)
    except CLIENT_ERRORS as e:
        console.print(f"[red]Login failed: {str(e)}[/red]")
        raise click.Abort()
    return client


def resolve_scope(project, env, path):
    """Fill project/environment/path from stored defaults"""
    project = project or CLIConfig.get_project_id()
    env = env or CLIConfig.get_environment()
    path = path or CLIConfig.get_path()

    if not project:
        console.print("[red]Error: No project selected. Pass --project or run 'infisical-api use'.[/red]")
        raise click.Abort()
    if not env:
        console.print("[red]Error: No environment selected. Pass --env or run 'infisical-api use'.[/red]")
        raise click.Abort()
    return project, env, path


def scope_options(func):
    """Common --project/--env/--path options"""
    func = click.option('--path', '-p', default=None, help='Secret path (default: /)')(func)
    func = click.option('--env', '-e', default=None, help='Environment slug')(func)
    func = click.option('--project', default=None, help='Project ID')(func)
    return func


def format_env(secrets) -> str:
    lines = []
    for secret in secrets:
        value = secret.secret_value.replace('\\', '\\\\').replace('"', '\\"').replace('\n', '\\n')
        lines.append(f'{secret.secret_key}="{value}"')
    return '\n'.join(lines) + ('\n' if lines else '')


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Log HTTP activity')
def cli(verbose):
    """infisical-api - Infisical secrets and KMS from the command line"""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(message)s',
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


# ============ Auth Commands ============

@cli.command()
@click.option('--client-id', prompt='Client ID', help='Universal Auth client ID')
@click.option('--client-secret', prompt='Client secret', hide_input=True, help='Universal Auth client secret')
@click.option('--url', default=None, help='Infisical instance URL')
def login(client_id, client_secret, url):
    """Authenticate with a Universal Auth machine identity"""
    api_url = url or CLIConfig.get_api_url()
    console.print(f"[cyan]Signing in to {api_url}...[/cyan]")

    try:
        token = InfisicalClient(api_url).login_universal_auth(client_id, client_secret)
    except CLIENT_ERRORS as e:
        console.print(f"[red]Sign in failed: {str(e)}[/red]")
        raise click.Abort()

    CLIConfig.set_client_secret(client_secret)
    CLIConfig.set_client_id(client_id)
    if url:
        CLIConfig.set_api_url(url)

    console.print("[green]Signed in successfully[/green]")
    console.print(f"[dim]Token expires in {token.expires_in}s (max TTL {token.access_token_max_ttl}s)[/dim]")


@cli.command()
def logout():
    """Remove stored credentials"""
    CLIConfig.delete_credentials()
    console.print("[green]Logged out successfully[/green]")


@cli.command()
def whoami():
    """Show current identity and defaults"""
    client_id = CLIConfig.get_client_id()
    if not client_id:
        console.print("[yellow]Not logged in[/yellow]")
        return

    console.print("[cyan]Current session:[/cyan]")
    console.print(f"  API URL: [green]{CLIConfig.get_api_url()}[/green]")
    console.print(f"  Client ID: [green]{client_id}[/green]")
    project = CLIConfig.get_project_id()
    env = CLIConfig.get_environment()
    console.print(f"  Project: [green]{project}[/green]" if project else "  Project: [yellow]None selected[/yellow]")
    console.print(f"  Environment: [green]{env}[/green]" if env else "  Environment: [yellow]None selected[/yellow]")
    console.print(f"  Path: [green]{CLIConfig.get_path()}[/green]")


@cli.command()
@click.option('--project', default=None, help='Default project ID')
@click.option('--env', '-e', default=None, help='Default environment slug')
@click.option('--path', '-p', default=None, help='Default secret path')
def use(project, env, path):
    """Set default project, environment and path"""
    if not (project or env or path):
        console.print("[yellow]Nothing to set. Pass --project, --env or --path.[/yellow]")
        return
    if project:
        CLIConfig.set_project_id(project)
    if env:
        CLIConfig.set_environment(env)
    if path:
        CLIConfig.set_path(path)
    console.print("[green]Defaults updated[/green]")


# ============ Secret Commands ============

@cli.command('list')
@scope_options
@click.option('--recursive', '-r', is_flag=True, help='Include sub-folders')
@click.option('--output', '-o', type=click.Choice(['text', 'json', 'yaml']), default='text', help='Output format')
def list_secrets(project, env, path, recursive, output):
    """List secrets, including imported ones"""
    project, env, path = resolve_scope(project, env, path)
    client = get_client()

    try:
        secrets = client.secrets.list(project, env, path=path, recursive=recursive)
    except CLIENT_ERRORS as e:
        console.print(f"[red]Failed to list secrets: {str(e)}[/red]")
        raise click.Abort()

    if output == 'json':
        print(json.dumps({'secrets': [s.to_dict() for s in secrets]}, indent=2))
        return
    if output == 'yaml':
        print(yaml.safe_dump({'secrets': [s.to_dict() for s in secrets]}, default_flow_style=False, sort_keys=False), end='')
        return

    if not secrets:
        console.print("[yellow]No secrets found[/yellow]")
        return

    table = Table(title=f"Secrets in {env}:{path} ({len(secrets)})")
    table.add_column("Key", style="cyan")
    table.add_column("Path", style="yellow")
    table.add_column("Version", style="magenta")
    table.add_column("Comment", style="dim")

    for secret in secrets:
        comment = secret.secret_comment
        table.add_row(
            secret.secret_key,
            secret.secret_path or path,
            f"v{secret.version}",
            comment[:40] + "..." if len(comment) > 40 else comment,
        )

    console.print(table)


@cli.command('get')
@click.argument('secret_name')
@scope_options
@click.option('--fallback', is_flag=True, help='Use a same-named environment variable if the lookup fails')
@click.option('--output', '-o', type=click.Choice(['text', 'json', 'value']), default='text', help='Output format')
def get_secret(secret_name, project, env, path, fallback, output):
    """Get a secret value"""
    project, env, path = resolve_scope(project, env, path)
    client = get_client()

    try:
        secret = client.secrets.get(secret_name, project, env, path=path, fallback_to_env=fallback)
    except NotFoundError:
        if output == 'json':
            print(json.dumps({'error': 'Secret not found'}))
        else:
            console.print(f"[red]Secret '{secret_name}' not found[/red]")
        raise click.Abort()
    except CLIENT_ERRORS as e:
        console.print(f"[red]Failed to get secret: {str(e)}[/red]")
        raise click.Abort()

    if output == 'json':
        print(json.dumps(secret.to_dict(), indent=2))
    elif output == 'value':
        print(secret.secret_value)
    else:
        console.print(f"\n[cyan]{secret.secret_key}[/cyan]")
        if secret.is_fallback:
            console.print("[yellow](from local environment, not Infisical)[/yellow]")
        else:
            console.print(f"[dim]Version: v{secret.version}[/dim]")
        if secret.secret_comment:
            console.print(f"[dim]Comment: {secret.secret_comment}[/dim]")
        console.print(f"\nValue: {secret.secret_value}")


@cli.command('set')
@click.argument('secret_name')
@scope_options
@click.option('--value', prompt=True, hide_input=True, help='Secret value')
@click.option('--comment', '-c', default=None, help='Secret comment')
def set_secret(secret_name, project, env, path, value, comment):
    """Create or update a secret"""
    project, env, path = resolve_scope(project, env, path)
    client = get_client()

    try:
        try:
            secret = client.secrets.update(
                secret_name, project, env,
                secret_value=value, path=path, secret_comment=comment,
            )
            console.print(f"[green]Updated secret: {secret_name} (v{secret.version})[/green]")
        except NotFoundError:
            client.secrets.create(
                secret_name, value, project, env,
                path=path, secret_comment=comment or '',
            )
            console.print(f"[green]Created secret: {secret_name}[/green]")
    except CLIENT_ERRORS as e:
        console.print(f"[red]Failed to set secret: {str(e)}[/red]")
        raise click.Abort()


@cli.command('delete')
@click.argument('secret_name')
@scope_options
@click.option('--force', '-f', is_flag=True, help='Skip confirmation')
def delete_secret(secret_name, project, env, path, force):
    """Delete a secret"""
    project, env, path = resolve_scope(project, env, path)

    if not force and not click.confirm(f"Delete secret '{secret_name}' from {env}:{path}?"):
        return

    client = get_client()
    try:
        client.secrets.delete(secret_name, project, env, path=path)
    except CLIENT_ERRORS as e:
        console.print(f"[red]Failed to delete secret: {str(e)}[/red]")
        raise click.Abort()
    console.print(f"[green]Deleted secret: {secret_name}[/green]")


@cli.command('export')
@scope_options
@click.option('--recursive', '-r', is_flag=True, help='Include sub-folders')
@click.option('--format', '-f', 'output_format', type=click.Choice(['env', 'json', 'yaml']), default='env', help='Output format')
@click.option('--output', '-o', type=click.Path(), help='Output file (otherwise prints to stdout)')
def export_secrets(project, env, path, recursive, output_format, output):
    """Export secrets as .env, JSON or YAML"""
    project, env, path = resolve_scope(project, env, path)
    client = get_client()

    try:
        secrets = client.secrets.list(project, env, path=path, recursive=recursive)
    except CLIENT_ERRORS as e:
        console.print(f"[red]Failed to export secrets: {str(e)}[/red]")
        raise click.Abort()

    values = {s.secret_key: s.secret_value for s in secrets}
    if output_format == 'json':
        content = json.dumps(values, indent=2) + '\n'
    elif output_format == 'yaml':
        content = yaml.safe_dump(values, default_flow_style=False, sort_keys=False)
    else:
        content = format_env(secrets)

    if output:
        with open(output, 'w') as f:
            f.write(content)
        console.print(f"[green]Exported {len(secrets)} secrets to {output}[/green]")
    else:
        print(content, end='')


# ============ KMS Commands ============

@cli.group()
def kms():
    """Manage KMS keys and cryptographic operations"""
    pass


@kms.command('keys')
@click.option('--project', default=None, help='Project ID')
@click.option('--output', '-o', type=click.Choice(['text', 'json']), default='text', help='Output format')
def list_keys(project, output):
    """List KMS keys"""
    project = project or CLIConfig.get_project_id()
    if not project:
        console.print("[red]Error: No project selected. Pass --project or run 'infisical-api use'.[/red]")
        raise click.Abort()
    client = get_client()

    try:
        keys = client.kms.list(project)
    except CLIENT_ERRORS as e:
        console.print(f"[red]Failed to list keys: {str(e)}[/red]")
        raise click.Abort()

    if output == 'json':
        print(json.dumps([vars(k) for k in keys], indent=2))
        return

    if not keys:
        console.print("[yellow]No keys found[/yellow]")
        return

    table = Table(title=f"KMS Keys ({len(keys)})")
    table.add_column("Name", style="cyan")
    table.add_column("ID", style="dim")
    table.add_column("Usage", style="yellow")
    table.add_column("Algorithm", style="magenta")
    table.add_column("Disabled", style="red")

    for key in keys:
        table.add_row(key.name, key.id, key.key_usage, key.encryption_algorithm, "yes" if key.is_disabled else "")

    console.print(table)


@kms.command('create-key')
@click.argument('name')
@click.option('--project', default=None, help='Project ID')
@click.option('--description', '-d', default='', help='Key description')
@click.option('--usage', type=click.Choice([u.value for u in KeyUsage]), default=KeyUsage.ENCRYPT_DECRYPT.value, help='Key usage')
@click.option('--algorithm', type=click.Choice([a.value for a in EncryptionAlgorithm]), default=EncryptionAlgorithm.AES_256_GCM.value, help='Key algorithm')
def create_key(name, project, description, usage, algorithm):
    """Create a KMS key"""
    project = project or CLIConfig.get_project_id()
    if not project:
        console.print("[red]Error: No project selected. Pass --project or run 'infisical-api use'.[/red]")
        raise click.Abort()
    client = get_client()

    try:
        key = client.kms.create(project, name, description=description, key_usage=usage, encryption_algorithm=algorithm)
    except CLIENT_ERRORS as e:
        console.print(f"[red]Failed to create key: {str(e)}[/red]")
        raise click.Abort()
    console.print(f"[green]Created key: {key.name} ({key.id})[/green]")


@kms.command('encrypt')
@click.argument('key_id')
@click.argument('plaintext')
def encrypt(key_id, plaintext):
    """Encrypt text with a KMS key"""
    client = get_client()
    try:
        print(client.kms.encrypt(key_id, encode_base64(plaintext)))
    except CLIENT_ERRORS as e:
        console.print(f"[red]Failed to encrypt: {str(e)}[/red]")
        raise click.Abort()


@kms.command('decrypt')
@click.argument('key_id')
@click.argument('ciphertext')
def decrypt(key_id, ciphertext):
    """Decrypt ciphertext with a KMS key"""
    client = get_client()
    try:
        print(decode_base64(client.kms.decrypt(key_id, ciphertext)))
    except CLIENT_ERRORS as e:
        console.print(f"[red]Failed to decrypt: {str(e)}[/red]")
        raise click.Abort()


@kms.command('sign')
@click.argument('key_id')
@click.argument('data')
@click.option('--algorithm', type=click.Choice([a.value for a in SigningAlgorithm]), default=SigningAlgorithm.RSASSA_PKCS1_V1_5_SHA_256.value, help='Signing algorithm')
def sign(key_id, data, algorithm):
    """Sign text with a sign-verify key"""
    client = get_client()
    try:
        result = client.kms.sign(key_id, encode_base64(data), signing_algorithm=algorithm)
    except CLIENT_ERRORS as e:
        console.print(f"[red]Failed to sign: {str(e)}[/red]")
        raise click.Abort()
    print(result.signature)


@kms.command('verify')
@click.argument('key_id')
@click.argument('data')
@click.argument('signature')
@click.option('--algorithm', type=click.Choice([a.value for a in SigningAlgorithm]), default=SigningAlgorithm.RSASSA_PKCS1_V1_5_SHA_256.value, help='Signing algorithm')
def verify(key_id, data, signature, algorithm):
    """Verify a signature"""
    client = get_client()
    try:
        result = client.kms.verify(key_id, encode_base64(data), signature, signing_algorithm=algorithm)
    except CLIENT_ERRORS as e:
        console.print(f"[red]Failed to verify: {str(e)}[/red]")
        raise click.Abort()

    if result.signature_valid:
        console.print("[green]Signature is valid[/green]")
    else:
        console.print("[red]Signature is NOT valid[/red]")
        raise click.Abort()


@kms.command('public-key')
@click.argument('key_id')
def public_key(key_id):
    """Print the public key of an asymmetric key"""
    client = get_client()
    try:
        print(client.kms.get_public_key(key_id))
    except CLIENT_ERRORS as e:
        console.print(f"[red]Failed to get public key: {str(e)}[/red]")
        raise click.Abort()


if __name__ == '__main__':
    cli()
