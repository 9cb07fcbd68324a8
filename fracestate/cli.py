import logging

import click

from . import db
from .models import User
from .services import clock, pool, progress

logger = logging.getLogger(__name__)


def register_commands(app):

    @app.cli.command('sync-users')
    def sync_users():
        """Catch every user up to the current time."""
        now = clock.utcnow()
        users = User.query.order_by(User.id).all()
        for user in users:
            summary = progress.synchronize(user, now)
            click.echo(f"{user.username}: {summary['message']}")
        db.session.commit()
        logger.info("Synchronized %s users", len(users))

    @app.cli.command('maintain-pools')
    def maintain_pools():
        """Advance listing timers and restock every user's market."""
        now = clock.utcnow()
        for user in User.query.order_by(User.id).all():
            summary = pool.run_maintenance(user, now)
            click.echo(f"{user.username}: {summary['listed']} listed, "
                       f"{summary['generated'] + summary['rebalanced']} generated, "
                       f"{summary['removed']} removed")
        db.session.commit()
