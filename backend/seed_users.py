"""
Seed script: users CSV -> organizations + users tables.

Lock holders must exist in ``users`` to authenticate against the lock API.

CSV columns: org_id, org_name, user_id, username, email, display_name, role

Usage:
    python -m backend.seed_users --csv users.csv
"""

from __future__ import annotations

import argparse
import asyncio
import logging

import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.database import async_session, init_db
from backend.models import USER_ROLES, Organization, User

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("org_id", "user_id", "username")
OPTIONAL_COLUMNS = ("org_name", "email", "display_name", "role")


def _fill_defaults(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df["display_name"] = df["display_name"].where(df["display_name"] != "", df["username"])
    df["org_name"] = df["org_name"].where(df["org_name"] != "", df["org_id"])
    df["role"] = df["role"].where(df["role"] != "", "annotator")
    return df


def load_users_csv(csv_path: str, fill_defaults: bool = True) -> pd.DataFrame:
    """Read and normalise the users CSV.

    Blank optional cells (and unknown roles) stay empty unless
    ``fill_defaults`` is set, in which case they get the values a new
    user would be created with.
    """
    raw = pd.read_csv(csv_path, encoding="utf-8", dtype=str).fillna("")
    missing = [c for c in REQUIRED_COLUMNS if c not in raw.columns]
    if missing:
        raise ValueError(f"Users CSV is missing columns: {', '.join(missing)}")

    for col in OPTIONAL_COLUMNS:
        if col not in raw.columns:
            raw[col] = ""
    for col in raw.columns:
        raw[col] = raw[col].str.strip()

    raw = raw[(raw["user_id"] != "") & (raw["org_id"] != "")].copy()
    raw["role"] = raw["role"].str.lower()
    raw["role"] = raw["role"].where(raw["role"].isin(USER_ROLES), "")
    raw = raw.drop_duplicates(subset="user_id", keep="last")
    return _fill_defaults(raw) if fill_defaults else raw


async def seed(
    csv_path: str,
    session_factory: async_sessionmaker[AsyncSession] = async_session,
) -> tuple[int, int]:
    """Upsert organizations and users. Returns (organizations, users) written.

    Existing rows only take the values the CSV actually provides; blank or
    absent columns leave them untouched.
    """
    df = load_users_csv(csv_path, fill_defaults=False)
    defaults = _fill_defaults(df)

    org_names = df.groupby("org_id", sort=False)["org_name"].agg(
        lambda names: next((n for n in names if n), "")
    )

    async with session_factory() as session:
        for org_id, name in org_names.items():
            org = await session.get(Organization, org_id)
            if org is None:
                session.add(Organization(id=org_id, name=name or org_id))
            elif name:
                org.name = name
        await session.flush()

        for rec, filled in zip(
            df.to_dict(orient="records"), defaults.to_dict(orient="records")
        ):
            user = await session.get(User, rec["user_id"])
            if user is None:
                session.add(
                    User(
                        id=rec["user_id"],
                        org_id=rec["org_id"],
                        username=rec["username"],
                        email=filled["email"],
                        display_name=filled["display_name"],
                        role=filled["role"],
                        is_active=True,
                    )
                )
                continue

            user.org_id = rec["org_id"]
            user.username = rec["username"]
            user.is_active = True
            for field in ("email", "display_name", "role"):
                if rec[field]:
                    setattr(user, field, rec[field])
        await session.commit()

    logger.info("Seeded %d organization(s) and %d user(s)", len(org_names), len(df))
    return len(org_names), len(df)


async def _run(csv_path: str):
    await init_db()
    await seed(csv_path)


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    parser = argparse.ArgumentParser()
    parser.add_argument("--csv", required=True, help="Path to users CSV")
    args = parser.parse_args()
    asyncio.run(_run(args.csv))


if __name__ == "__main__":
    main()
