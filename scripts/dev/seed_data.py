#!/usr/bin/env python
"""Seed database with test data."""
from uuid import uuid4

from sqlalchemy.orm import Session

from beatmarket.db.base import SessionLocal
from beatmarket.models import Beat, UserRole
from beatmarket.repositories.user_repo import UserRepository


def _licenses(basic, standard, pro, exclusive):
    return [
        {
            "type": "basic",
            "price": basic,
            "available": True,
            "features": {"mp3": True, "wav": False, "stems": False,
                         "streams": 50000, "physical_sales": 500, "exclusivity": False},
        },
        {
            "type": "standard",
            "price": standard,
            "available": True,
            "features": {"mp3": True, "wav": True, "stems": False,
                         "streams": 100000, "physical_sales": 1000, "exclusivity": False},
        },
        {
            "type": "pro",
            "price": pro,
            "available": True,
            "features": {"mp3": True, "wav": True, "stems": True,
                         "streams": 250000, "physical_sales": 2500, "exclusivity": False},
        },
        {
            "type": "exclusive",
            "price": exclusive,
            "available": True,
            "features": {"mp3": True, "wav": True, "stems": True,
                         "streams": -1, "physical_sales": -1, "exclusivity": True},
        },
    ]


USERS = [
    {"name": "Admin User", "email": "admin@test.com", "password": "admin123", "role": UserRole.admin},
    {"name": "Test Customer", "email": "customer@test.com", "password": "password123", "role": UserRole.user},
]

BEATS = [
    {
        "title": "Dark Trap Energy",
        "bpm": 140,
        "musical_key": "C#m",
        "genres": ["Trap", "Dark"],
        "moods": ["Dark", "Energetic", "Aggressive"],
        "tags": ["808", "hard", "club"],
        "duration": 180,
        "licenses": _licenses(2900, 4900, 9900, 49900),
    },
    {
        "title": "Midnight Drill",
        "bpm": 144,
        "musical_key": "Fm",
        "genres": ["Drill"],
        "moods": ["Dark", "Mysterious"],
        "tags": ["uk drill", "sliding 808"],
        "duration": 165,
        "licenses": _licenses(2900, 4900, 9900, 59900),
    },
    {
        "title": "Golden Hour",
        "bpm": 92,
        "musical_key": "Ebmaj",
        "genres": ["R&B", "Soul"],
        "moods": ["Chill", "Romantic"],
        "tags": ["guitar", "smooth"],
        "duration": 200,
        "licenses": _licenses(2500, 3900, 7900, 39900),
    },
]


def seed_users(db: Session):
    """Create test accounts."""
    users = UserRepository(db)
    for data in USERS:
        if users.get_by_email(data["email"]):
            continue
        user = users.create_user(data["name"], data["email"], data["password"], role=data["role"])
        print(f"  → Created user: {user.email} (role: {user.role.value})")
    print("✅ Created test users")


def seed_beats(db: Session):
    """Create demo beats with placeholder storage keys. Idempotent by title."""
    for data in BEATS:
        existing = db.query(Beat).filter(Beat.title == data["title"]).first()
        if existing:
            continue

        beat_id = uuid4()
        db.add(Beat(
            id=beat_id,
            title=data["title"],
            bpm=data["bpm"],
            musical_key=data["musical_key"],
            genres=data["genres"],
            moods=data["moods"],
            tags=data["tags"],
            preview_key=f"previews/{beat_id}/preview.mp3",
            cover_key=f"covers/{beat_id}/cover.jpg",
            files={
                "mp3": f"beats/{beat_id}/mp3.mp3",
                "wav": f"beats/{beat_id}/wav.wav",
                "stems": f"beats/{beat_id}/stems.zip",
            },
            waveform={"peaks": [], "duration": data["duration"]},
            licenses=data["licenses"],
            is_active=True,
        ))
        print(f"  → Created beat: {data['title']}")

    db.commit()
    print("✅ Created demo beats")


if __name__ == "__main__":
    print("🌱 Seeding database...")
    print("=" * 50)

    db = SessionLocal()
    try:
        seed_users(db)
        seed_beats(db)
        print("=" * 50)
        print("✅ Database seeded successfully!")
        print("\n📝 Test Credentials:")
        print("   Admin: admin@test.com / admin123")
        print("   Customer: customer@test.com / password123")
    except Exception as e:
        print(f"❌ Error seeding database: {e}")
        import traceback
        traceback.print_exc()
    finally:
        db.close()
