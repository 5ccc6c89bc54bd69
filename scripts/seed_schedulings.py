#!/usr/bin/env python3
"""Seed the database with an establishment and a few upcoming schedulings."""
import sys
from datetime import timedelta
from pathlib import Path

# Add the parent directory to the path so we can import the app
sys.path.insert(0, str(Path(__file__).parent.parent))

from salonbook import create_app
from salonbook.extensions import db
from salonbook.models import Establishment, Scheduling, Service, User
from salonbook.reminders import business_now

def seed_schedulings():
    """Add an owner, a salon, a service and schedulings 1h and 24h ahead."""
    app = create_app()

    with app.app_context():
        db.create_all()

        owner = User.query.filter_by(email="owner@saloes.app").first()
        if owner is None:
            owner = User(name="Dona do Salão", email="owner@saloes.app", role="owner")
            db.session.add(owner)
            db.session.flush()
            print(f"👤 Created owner {owner.email}")

        establishment = Establishment(owner_id=owner.user_id, name="Salão Central")
        db.session.add(establishment)
        db.session.flush()

        service = Service(
            establishment_id=establishment.establishment_id,
            name="Corte de cabelo",
            price_cents=5000,
        )
        db.session.add(service)
        db.session.flush()

        now = business_now(app.config["BUSINESS_TIMEZONE"]).replace(second=0, microsecond=0)
        for lead, client in ((timedelta(hours=1), "Ana"), (timedelta(hours=24), "Bruno")):
            slot = now + lead
            db.session.add(
                Scheduling(
                    scheduled_date=slot.date(),
                    scheduled_time=slot.time(),
                    status="confirmed",
                    service_id=service.service_id,
                    establishment_id=establishment.establishment_id,
                    client_name=client,
                )
            )

        db.session.commit()
        print(f"✅ Seeded establishment {establishment.name} with 2 confirmed schedulings")

if __name__ == "__main__":
    seed_schedulings()
