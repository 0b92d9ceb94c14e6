"""Tests for the users CSV seed script."""

from pathlib import Path

import pytest
from sqlalchemy import select

from backend.models import Organization, User
from backend.seed_users import load_users_csv, seed

CSV = """org_id,org_name,user_id,username,email,display_name,role
org-1,Northwind Capital,u-1,alice,alice@northwind.example,Alice Moreau,manager
org-1,,u-2,bob,bob@northwind.example,,reviewer
org-2,Harbor Partners,u-3,carol,carol@harbor.example,Carol Diaz,ADMIN
,,u-4,orphan,,,
"""


@pytest.fixture
def users_csv(tmp_path: Path) -> Path:
    path = tmp_path / "users.csv"
    path.write_text(CSV, encoding="utf-8")
    return path


class TestLoadUsersCsv:
    """Tests for load_users_csv."""

    def test_fills_defaults(self, users_csv: Path) -> None:
        df = load_users_csv(str(users_csv)).set_index("user_id")

        assert list(df.index) == ["u-1", "u-2", "u-3"]
        assert df.loc["u-2", "display_name"] == "bob"
        assert df.loc["u-2", "org_name"] == "org-1"
        assert df.loc["u-2", "role"] == "annotator"
        assert df.loc["u-3", "role"] == "admin"

    def test_missing_required_column(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.csv"
        path.write_text("org_id,username\norg-1,alice\n", encoding="utf-8")

        with pytest.raises(ValueError, match="user_id"):
            load_users_csv(str(path))


class TestSeed:
    """Tests for seed."""

    async def test_seeds_orgs_and_users(self, users_csv: Path, session_factory) -> None:
        orgs, users = await seed(str(users_csv), session_factory=session_factory)

        assert (orgs, users) == (2, 3)
        async with session_factory() as session:
            org_names = dict(
                (await session.execute(select(Organization.id, Organization.name))).all()
            )
            bob = await session.get(User, "u-2")

        assert org_names == {"org-1": "Northwind Capital", "org-2": "Harbor Partners"}
        assert bob.display_name == "bob"
        assert bob.org_id == "org-1"
        assert bob.is_active is True

    async def test_reseed_updates_in_place(self, users_csv: Path, tmp_path: Path, session_factory) -> None:
        await seed(str(users_csv), session_factory=session_factory)

        updated = tmp_path / "updated.csv"
        updated.write_text(
            "org_id,user_id,username,display_name\norg-1,u-1,alice,Alice M.\n",
            encoding="utf-8",
        )
        await seed(str(updated), session_factory=session_factory)

        async with session_factory() as session:
            alice = await session.get(User, "u-1")
            org = await session.get(Organization, "org-1")
            total = len((await session.execute(select(User.id))).all())

        assert alice.display_name == "Alice M."
        assert alice.role == "manager"
        assert alice.email == "alice@northwind.example"
        assert org.name == "Northwind Capital"
        assert total == 3

    async def test_reseed_blank_cells_keep_values(
        self, users_csv: Path, tmp_path: Path, session_factory
    ) -> None:
        await seed(str(users_csv), session_factory=session_factory)

        updated = tmp_path / "updated.csv"
        updated.write_text(
            "org_id,org_name,user_id,username,email,display_name,role\n"
            "org-2,,u-3,carol,,,unknown\n"
            "org-2,,u-5,dana,,,\n",
            encoding="utf-8",
        )
        orgs, users = await seed(str(updated), session_factory=session_factory)

        async with session_factory() as session:
            carol = await session.get(User, "u-3")
            dana = await session.get(User, "u-5")
            org = await session.get(Organization, "org-2")

        assert (orgs, users) == (1, 2)
        assert org.name == "Harbor Partners"
        assert carol.display_name == "Carol Diaz"
        assert carol.role == "admin"
        assert carol.email == "carol@harbor.example"
        assert dana.display_name == "dana"
        assert dana.role == "annotator"
