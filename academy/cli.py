import logging

import click
from flask import current_app

from .extensions import db
from .models import User, get_config, get_website_config

log = logging.getLogger(__name__)

PARTNERS = (("partner_a", "Partner A"), ("partner_b", "Partner B"))

def seed_defaults(with_partners=False):
    """Owner account plus the academy and website settings rows. Safe to re-run."""
    created = []
    owner = User.query.filter_by(role="owner").first()
    if owner is None:
        owner = User(user_code="OWNER-001", username=current_app.config["OWNER_USERNAME"],
                     full_name="Academy Owner", role="owner", partner_key="owner")
        owner.set_password(current_app.config["OWNER_PASSWORD"])
        db.session.add(owner)
        created.append(owner.username)
    if with_partners:
        for i, (key, name) in enumerate(PARTNERS, start=1):
            if User.query.filter_by(partner_key=key).first() is None:
                u = User(user_code=f"PARTNER-{i:03d}", username=key, full_name=name,
                         role="partner", partner_key=key)
                u.set_password(current_app.config["DEFAULT_PASSWORD"])
                db.session.add(u)
                created.append(u.username)
    get_config()
    get_website_config()
    db.session.commit()
    log.info("seeded accounts: %s", ", ".join(created) or "none")
    return created

def register_commands(app):
    @app.cli.command("init-db")
    def init_db():
        """Create all tables."""
        db.create_all()
        click.echo("Database tables created.")

    @app.cli.command("seed")
    @click.option("--partners", is_flag=True, help="Also create the two partner accounts.")
    def seed(partners):
        """Create the owner account and default settings."""
        db.create_all()
        created = seed_defaults(with_partners=partners)
        if created:
            click.echo(f"Created: {', '.join(created)}")
        else:
            click.echo("Nothing to do, accounts already exist.")
