# ============================================================================
# Seed Game Data (Subscription Plans & Pets)
# ============================================================================
"""
Seeds the subscription plans (daily session limits per tier) and the pet
definitions the gacha draws from. Safe to run repeatedly: plans are updated
in place and existing pets are left alone.

Usage:
    python scripts/seed_game_data.py
"""

import asyncio
import sys
import os

# Ensure the app directory is in the python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.database import async_session_maker, upsert
from app.models.gamification import Pet, PetRarity
from app.models.subscription import SubscriptionPlan
from app.models.user import SubscriptionTier

PLANS = [
    {
        "tier": SubscriptionTier.CORE,
        "name": "Core",
        "price_monthly": 0,
        "sessions_per_day": 3,
        "features": ["3 practice sessions per day", "Basic progress tracking", "Access to all subjects"],
    },
    {
        "tier": SubscriptionTier.PLUS,
        "name": "Plus",
        "price_monthly": 9.99,
        "sessions_per_day": 10,
        "features": ["10 practice sessions per day", "Detailed progress reports", "Priority support"],
    },
    {
        "tier": SubscriptionTier.PRO,
        "name": "Pro",
        "price_monthly": 19.99,
        "sessions_per_day": 25,
        "features": ["25 practice sessions per day", "Advanced analytics", "Downloadable reports"],
    },
]

PETS = {
    PetRarity.COMMON: ["Hamster", "Chick", "Bunny", "Puppy", "Kitten", "Piglet"],
    PetRarity.RARE: ["Fox", "Panda", "Koala", "Penguin", "Owl"],
    PetRarity.EPIC: ["Unicorn", "Dragon", "Phoenix"],
    PetRarity.LEGENDARY: ["Golden Dragon", "Celestial Fox"],
}

def image_name(pet_name: str, tier: int = 1) -> str:
    slug = pet_name.lower().replace(" ", "-")
    return f"{slug}.png" if tier == 1 else f"{slug}-tier{tier}.png"

async def seed_game_data():
    async with async_session_maker() as db:
        print("Seeding subscription plans...")
        for plan in PLANS:
            await upsert(
                db,
                SubscriptionPlan,
                plan,
                conflict_columns=["tier"],
                update={k: v for k, v in plan.items() if k != "tier"},
            )
            print(f"  [UPSERT] {plan['name']}: {plan['sessions_per_day']} sessions/day")

        print("Seeding pets...")
        for rarity, names in PETS.items():
            created = 0
            for name in names:
                created += await upsert(
                    db,
                    Pet,
                    {
                        "name": name,
                        "rarity": rarity,
                        "image_path": image_name(name),
                        "tier2_image_path": image_name(name, 2),
                        "tier3_image_path": image_name(name, 3),
                    },
                    conflict_columns=["name"],
                )
            print(f"  + {created} new {rarity.value} pets ({len(names)} defined)")

        await db.commit()
        print("\nGame data seeding completed successfully!")

if __name__ == "__main__":
    asyncio.run(seed_game_data())
