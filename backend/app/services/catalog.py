from __future__ import annotations
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from app.models.challenge import Challenge

log = structlog.get_logger()

# Built-in party catalog (title, description)
DEFAULT_CHALLENGES: list[tuple[str, str]] = [
    ("Group selfie", "Take a selfie with at least three other players in frame."),
    ("Strike a statue", "Freeze in a statue pose next to a real statue or sculpture."),
    ("Stranger high five", "Record a high five with someone who is not playing."),
    ("Color hunt: red", "Photograph five different red objects in one shot."),
    ("Tiny world", "Make a toy or small object look gigantic using perspective."),
    ("Dance break", "Film ten seconds of dancing somewhere unexpected."),
    ("Human pyramid", "Build a (safe) pyramid with your teammates."),
    ("Shadow puppet", "Capture a recognisable animal made with your shadow."),
    ("Mirror twin", "Copy someone's outfit or pose and photograph both of you."),
    ("Reflection shot", "Take a photo that only shows you through a reflection."),
    ("Local legend", "Get a photo with a staff member of the place you are in."),
    ("Upside down", "Take a photo where everything looks upside down."),
    ("Silent movie", "Film a five-second scene with no sound and big gestures."),
    ("Jump shot", "Catch every player in the air at the same time."),
    ("Hidden letter", "Find the first letter of your nickname somewhere in the wild."),
]


async def seed(session: AsyncSession, entries: list[tuple[str, str]] | None = None) -> dict:
    """Insert missing catalog entries by title. Returns {"inserted": n, "total": m}."""
    entries = entries if entries is not None else DEFAULT_CHALLENGES
    existing = set((await session.execute(select(Challenge.title))).scalars().all())
    inserted = 0
    for title, description in entries:
        if title in existing:
            continue
        session.add(Challenge(title=title, description=description, active=True))
        existing.add(title)
        inserted += 1
    await session.commit()
    total = int(await session.scalar(select(func.count(Challenge.id))) or 0)
    log.info("catalog_seeded", inserted=inserted, total=total)
    return {"inserted": inserted, "total": total}
