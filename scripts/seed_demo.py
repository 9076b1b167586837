import asyncio
from datetime import datetime, timedelta, timezone

from tutortrack.config import load_settings
from tutortrack.infra.db.connection import Database
from tutortrack.infra.db.repo.sessions_sqlite import SqliteSessionStore

TUTOR_ID = "demo-tutor"


async def run():
    settings = load_settings()
    db = Database(settings.db_path)
    await db.init_schema()
    store = SqliteSessionStore(db)

    await store.add_tutor(TUTOR_ID, "Europe/Kyiv")
    await store.add_student("stu-anna", TUTOR_ID, "Anna")
    await store.add_student("stu-ben", TUTOR_ID, "Ben")

    now = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)

    # timestamped sessions over the last two weeks, every other one paid
    for i in range(14):
        start = now - timedelta(days=i, hours=2)
        await store.add_session(
            session_id=f"demo-ts-{i}",
            tutor_id=TUTOR_ID,
            student_id="stu-anna" if i % 3 else "stu-ben",
            session_start=start,
            session_end=start + timedelta(minutes=60),
            rate=40.0,
            paid=i % 2 == 0,
        )

    # a legacy row (tutor-local date/time, no timestamps)
    yesterday = (now - timedelta(days=1)).date().isoformat()
    await store.add_session(
        session_id="demo-legacy-1",
        tutor_id=TUTOR_ID,
        student_id="stu-ben",
        date=yesterday,
        time="17:30",
        duration=90,
        rate=40.0,
        paid=True,
    )

    # an unclaimed booking in the future
    start = now + timedelta(days=3)
    await store.add_session(
        session_id="demo-booking-1",
        tutor_id=TUTOR_ID,
        unassigned_name="Chris (public booking)",
        session_start=start,
        session_end=start + timedelta(minutes=45),
        rate=40.0,
        status="confirmed",
    )
    print(f"seeded {TUTOR_ID} into {settings.db_path}")

asyncio.run(run())
