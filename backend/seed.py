"""
Populate the database with demo users, artworks and exhibitions.

    python backend/seed.py

Existing users, artworks and exhibitions are removed first. Every demo account
uses the password "password123".
"""
from datetime import timedelta

import database
from logger import get_logger
from schemas import Artwork, Exhibition, User
from security import hash_password

logger = get_logger(__name__)

DEMO_PASSWORD = "password123"

IMAGES = {
    "portrait": "/images/artwork-portrait-1.jpeg",
    "abstract": "/images/artwork-abstract-1.jpeg",
    "modern": "/images/artwork-modern-1.jpeg",
    "contemporary": "/images/artwork-contemporary-1.jpeg",
    "painting": "/images/artwork-painting-1.jpeg",
    "sculpture": "/images/artwork-sculpture-1.jpeg",
    "landscape": "/images/artwork-landscape-1.jpeg",
    "digital": "/images/artwork-digital-1.jpeg",
    "surrealist": "/images/artwork-surrealist-1.jpeg",
}

USERS = [
    dict(name="Sarah Johnson", email="sarah@example.com", role="artist", location="New York, NY",
         bio="Contemporary artist exploring the intersection of digital and traditional mediums.",
         avatar=IMAGES["portrait"], verified=True, rating=4.8, total_ratings=45, total_sales=12,
         specializations=["Painting", "Digital Art"]),
    dict(name="Michael Chen", email="michael@example.com", role="artist", location="Los Angeles, CA",
         bio="Abstract painter with a focus on color theory and emotional expression.",
         avatar=IMAGES["abstract"], verified=True, rating=4.6, total_ratings=32, total_sales=8,
         specializations=["Abstract"]),
    dict(name="Emma Rodriguez", email="emma@example.com", role="artist", location="Chicago, IL",
         bio="Sculptor working with mixed media and found objects.",
         avatar=IMAGES["modern"], rating=4.2, total_ratings=18, total_sales=5,
         specializations=["Sculpture", "Mixed Media"]),
    dict(name="David Kim", email="david@example.com", role="community", location="San Francisco, CA",
         bio="Art collector and enthusiast.", avatar=IMAGES["contemporary"]),
    dict(name="Admin", email="admin@example.com", role="admin"),
]

# (artist index, fields, indexes of users who liked it)
ARTWORKS = [
    (0, dict(title="Abstract Harmony", price=2500, category="Painting", medium="Acrylic on canvas",
             dimensions='36" x 48"', images=[IMAGES["abstract"]], tags=["abstract", "contemporary", "colorful"],
             views=156, featured=True,
             description="A vibrant exploration of color and form, inspired by the chaos and order of urban life."),
     [3]),
    (1, dict(title="Urban Landscape", price=1800, category="Digital Art", medium="Digital painting",
             dimensions='24" x 36"', images=[IMAGES["painting"]], tags=["digital", "urban", "landscape"],
             views=89, description="A digital painting capturing the energy and movement of city life."),
     []),
    (2, dict(title="Metamorphosis", price=3200, category="Sculpture", medium="Bronze and steel",
             dimensions='18" x 24" x 12"', images=[IMAGES["sculpture"]], tags=["sculpture", "bronze", "abstract"],
             views=203, featured=True,
             description="A mixed media sculpture exploring transformation and growth."),
     [0, 3]),
    (0, dict(title="Quiet Valley", price=1200, category="Landscape", medium="Oil on canvas",
             dimensions='20" x 30"', images=[IMAGES["landscape"]], tags=["landscape", "nature"],
             views=64, description="Morning light settling over a still valley, painted en plein air."),
     [1]),
    (1, dict(title="Dream Sequence", price=2100, category="Abstract", medium="Mixed media on paper",
             dimensions='30" x 30"', images=[IMAGES["surrealist"]], tags=["surreal", "abstract"],
             views=41, description="Layered shapes and washes drifting between memory and invention."),
     []),
    (2, dict(title="Neon Portrait", price=950, category="Portrait", medium="Digital print",
             dimensions='16" x 20"', images=[IMAGES["digital"]], tags=["portrait", "neon", "digital"],
             views=112, description="A portrait study lit by the glow of late night signage."),
     [0]),
]


def seed_database() -> dict:
    db = database.get_db()
    for name in ("user", "artwork", "exhibition"):
        db[name].delete_many({})
    logger.info("Cleared existing users, artworks and exhibitions")

    password_hash = hash_password(DEMO_PASSWORD)
    user_ids = [
        database.create_document("user", User(password_hash=password_hash, **fields))
        for fields in USERS
    ]
    logger.info(f"Created {len(user_ids)} users")

    artwork_ids = []
    for artist, fields, liked_by in ARTWORKS:
        artwork = Artwork(artist_id=user_ids[artist], likes=[user_ids[i] for i in liked_by], **fields)
        artwork_ids.append(database.create_document("artwork", artwork))
    logger.info(f"Created {len(artwork_ids)} artworks")

    now = database.utcnow()
    admin_id = user_ids[-1]
    exhibitions = [
        Exhibition(
            title="Modern Perspectives",
            description="A survey of contemporary painters reshaping how we see the city.",
            start_date=now + timedelta(days=14),
            end_date=now + timedelta(days=44),
            location="Downtown Gallery, New York",
            image=IMAGES["modern"],
            featured_artworks=artwork_ids[:2],
            organizer_id=admin_id,
            max_capacity=100,
        ),
        Exhibition(
            title="Form and Matter",
            description="Sculpture and mixed media works exploring material and transformation.",
            start_date=now - timedelta(days=3),
            end_date=now + timedelta(days=27),
            location="Riverside Arts Center, Chicago",
            image=IMAGES["sculpture"],
            featured_artworks=[artwork_ids[2], artwork_ids[5]],
            organizer_id=admin_id,
            status="ongoing",
        ),
    ]
    for exhibition in exhibitions:
        database.create_document("exhibition", exhibition)
    logger.info(f"Created {len(exhibitions)} exhibitions")

    return {"users": len(user_ids), "artworks": len(artwork_ids), "exhibitions": len(exhibitions)}


if __name__ == "__main__":
    counts = seed_database()
    database.ensure_indexes()
    logger.info(f"Seeding complete: {counts}")
    logger.info(f"Demo accounts use the password '{DEMO_PASSWORD}'")
    database.close()
