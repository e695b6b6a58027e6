"""Sample data seeder for local development."""

import asyncio
from decimal import Decimal
from uuid import UUID
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy import func, select, text

from app.core.config import settings
from app.core.constants import LEAD_CREATED_TRIGGER
from app.models import (
    Agent,
    AudienceGroup,
    Booking,
    Campaign,
    EmailTemplate,
    Lead,
    MarketingWorkflow,
    Property,
    Unit,
    UnitPricing,
    User,
)
from app.schemas.common import LeadPriority, LeadSource, LeadStatus

# Fixed tenant id so sample requests can be replayed after reseeding
DEMO_TENANT_ID = UUID("00000000-0000-4000-8000-000000000001")

LEAD_SOURCES = [s.value for s in LeadSource]
LEAD_STATUSES = [s.value for s in LeadStatus]
PRIORITIES = [p.value for p in LeadPriority]
CITIES = ["Dubai", "Abu Dhabi", "Sharjah", "Riyadh"]
PROPERTY_TYPES = ["apartment", "villa", "townhouse", "commercial"]

WELCOME_TEMPLATE = """<html><body>
<p>Hi {{name}},</p>
<p>Thanks for reaching out. Browse our latest listings
<a href="https://example.com/listings">here</a>.</p>
</body></html>"""

WELCOME_STEPS = [
    {"id": "start", "type": "START"},
    {"id": "welcome", "type": "EMAIL", "templateId": None, "subject": "Welcome {{name}}"},
    {"id": "wait", "type": "DELAY", "duration": 2, "unit": "days"},
    {
        "id": "hot",
        "type": "CONDITION",
        "field": "leadScore",
        "operator": "greater_than",
        "value": 10,
        "yesSteps": [
            {"id": "tag-hot", "type": "TAG", "action": "add", "tag": "hot"},
            {"id": "assign", "type": "ASSIGN", "agentId": "auto"},
        ],
        "noSteps": [{"id": "tag-cold", "type": "TAG", "action": "add", "tag": "nurture"}],
    },
]


async def seed():
    engine = create_async_engine(settings.DATABASE_URL, echo=False)
    session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with session_maker() as session:
        print("Seeding lead engine sample data")

        # TRUNCATE ... CASCADE handles FK ordering in one statement
        await session.execute(
            text(
                "TRUNCATE TABLE "
                "workflow_logs, workflow_enrollments, marketing_workflows, "
                "campaigns, audience_group_leads, audience_groups, "
                "email_templates, commissions, bookings, agent_leads, agents, "
                "lead_interactions, leads, unit_pricing, units, properties, users "
                "CASCADE"
            )
        )
        await session.commit()
        print("Cleared existing data")

        # 1. Agents with staggered commission rates
        agents = []
        for i in range(1, 6):
            agent = Agent(
                tenant_id=DEMO_TENANT_ID,
                specialization=PROPERTY_TYPES[i % len(PROPERTY_TYPES)],
                commission_rate=Decimal("2.5") + Decimal(i) / 2,
            )
            session.add(agent)
            agents.append(agent)
        await session.flush()
        print(f"Created {len(agents)} agents")

        # 2. Properties, each with a few priced units
        properties = []
        for i in range(12):
            prop = Property(
                tenant_id=DEMO_TENANT_ID,
                title=f"Sample Residence {i + 1}",
                city=CITIES[i % len(CITIES)],
                property_type=PROPERTY_TYPES[i % len(PROPERTY_TYPES)],
            )
            for j in range(3):
                unit = Unit(
                    unit_code=f"U{i + 1:02d}-{j + 1}",
                    unit_category=["studio", "1br", "2br"][j],
                    status="ACTIVE" if j < 2 else "INACTIVE",
                )
                unit.pricing.append(
                    UnitPricing(price=Decimal(400_000 + i * 75_000 + j * 150_000))
                )
                prop.units.append(unit)
            session.add(prop)
            properties.append(prop)
        await session.flush()
        print(f"Created {len(properties)} properties")

        # 3. Leads with a spread of sources and statuses
        leads = []
        for i in range(40):
            lead = Lead(
                tenant_id=DEMO_TENANT_ID,
                name=["Ahmed", "Fatima", "Layla", "Hassan", "Omar"][i % 5],
                email=f"lead{i}@example.com",
                phone=f"+97150{500000 + i:07d}",
                source=LEAD_SOURCES[i % len(LEAD_SOURCES)],
                status=LEAD_STATUSES[i % len(LEAD_STATUSES)],
                priority=PRIORITIES[i % len(PRIORITIES)],
                budget=Decimal(600_000 + (i % 6) * 250_000),
                preferences={
                    "location": CITIES[i % len(CITIES)],
                    "propertyType": PROPERTY_TYPES[i % len(PROPERTY_TYPES)],
                },
                property_id=properties[i % len(properties)].property_id,
            )
            session.add(lead)
            leads.append(lead)
        await session.flush()
        print(f"Created {len(leads)} leads")

        # 4. A registered buyer with a confirmed booking for commission testing
        buyer = User(tenant_id=DEMO_TENANT_ID, email=leads[0].email, name="Ahmed")
        session.add(buyer)
        await session.flush()
        leads[0].user_id = buyer.user_id
        booking = Booking(
            tenant_id=DEMO_TENANT_ID,
            user_id=buyer.user_id,
            unit_id=properties[0].units[0].unit_id,
            total_price=Decimal("1000000"),
            status="PENDING",
        )
        session.add(booking)
        print("Created sample buyer and booking")

        # 5. Template, welcome workflow and a draft campaign
        template = EmailTemplate(
            tenant_id=DEMO_TENANT_ID,
            name="Welcome",
            subject="Welcome to our listings",
            content=WELCOME_TEMPLATE,
        )
        session.add(template)
        await session.flush()

        steps = [dict(step) for step in WELCOME_STEPS]
        steps[1]["templateId"] = str(template.template_id)
        session.add(
            MarketingWorkflow(
                tenant_id=DEMO_TENANT_ID,
                name="New lead welcome",
                trigger={"type": LEAD_CREATED_TRIGGER},
                steps=steps,
            )
        )

        group = AudienceGroup(tenant_id=DEMO_TENANT_ID, name="Spring prospects")
        group.leads.extend(leads[:15])
        session.add(group)
        await session.flush()
        session.add(
            Campaign(
                tenant_id=DEMO_TENANT_ID,
                name="Spring launch",
                group_id=group.group_id,
                template_id=template.template_id,
            )
        )
        await session.commit()
        print("Created welcome workflow and draft campaign")

        # Validation
        lead_cnt = (await session.execute(select(func.count(Lead.lead_id)))).scalar()
        agent_cnt = (await session.execute(select(func.count(Agent.agent_id)))).scalar()

        print("\nValidation:")
        print(f"  Tenant: {DEMO_TENANT_ID}")
        print(f"  Leads: {lead_cnt}")
        print(f"  Agents: {agent_cnt}")
        print(f"  Booking to confirm: {booking.booking_id}")
        print("Seeding complete")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
