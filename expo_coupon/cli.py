# expo_coupon/cli.py
import click
from flask.cli import with_appcontext
from werkzeug.security import generate_password_hash

from .extensions import db
from .model import User
from .services.accounts import ensure_default_admin


@click.command("create-admin")
@with_appcontext
@click.option("--username", required=True)
@click.option("--password", required=True)
@click.option("--name", required=True)
def create_admin(username, password, name):
    username = username.strip()
    if User.query.filter_by(username=username).first():
        click.echo("Username already exists"); return
    u = User(username=username, name=name, password_hash=generate_password_hash(password), role="admin")
    db.session.add(u); db.session.commit()
    click.echo(f"Admin created: {u.id} {u.username}")


@click.command("seed-admin")
@with_appcontext
def seed_admin():
    user = ensure_default_admin()
    if user:
        click.echo(f"Default admin created: {user.username}")
    else:
        click.echo("An admin account already exists")


def register_cli(app):
    app.cli.add_command(create_admin)
    app.cli.add_command(seed_admin)
