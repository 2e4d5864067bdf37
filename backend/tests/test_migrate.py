import json
import sqlite3

import pytest
from click.testing import CliRunner

from hackerchess.core.security import PasswordHasher
from hackerchess.migrate import backup_file, main, migrate_database
from hackerchess.stores.sql import SQLStore
from conftest import make_settings


@pytest.fixture
def legacy_db(tmp_path):
    path = tmp_path / "hackerChess.db"
    hasher = PasswordHasher(work_factor=1)
    conn = sqlite3.connect(path)
    conn.executescript(
        """
        CREATE TABLE users (
            id INTEGER PRIMARY KEY,
            username TEXT UNIQUE NOT NULL,
            password_hash TEXT NOT NULL,
            created_at TEXT
        );
        CREATE TABLE games (
            id INTEGER PRIMARY KEY,
            user_id INTEGER,
            pgn TEXT,
            fens TEXT,
            created_at TEXT
        );
        """
    )
    conn.executemany(
        "INSERT INTO users (id, username, password_hash, created_at) VALUES (?, ?, ?, ?)",
        [
            (7, "alice", hasher.hash("secret123"), "2022-03-04 05:06:07"),
            (8, "bob", hasher.hash("hunter2"), None),
        ],
    )
    conn.executemany(
        "INSERT INTO games (id, user_id, pgn, fens, created_at) VALUES (?, ?, ?, ?, ?)",
        [
            (1, 7, "1.e4 e5", '["a","b"]', "2022-03-05 10:00:00"),
            (2, 7, "1.d4", "legacy-fen", "2022-03-06 10:00:00"),
            (3, 8, None, None, None),
            (4, 99, "orphan", "[]", None),
        ],
    )
    conn.commit()
    conn.close()
    return path


@pytest.fixture
async def target(tmp_path):
    store = SQLStore(make_settings(f"sqlite+aiosqlite:///{tmp_path / 'target.db'}"))
    await store.start()
    try:
        yield store
    finally:
        await store.close()


async def test_migration_copies_users_and_games(legacy_db, target):
    report = await migrate_database(legacy_db, target)

    assert report.users_found == 2
    assert report.users_inserted == 2
    assert report.games_inserted == 3
    assert report.games_skipped == 1

    alice = await target.find_user_by_username("alice")
    assert alice.created_at.year == 2022
    assert PasswordHasher(work_factor=1).verify("secret123", alice.password_hash)

    games = await target.get_games_by_user(alice.id)
    assert [g.pgn for g in games] == ["1.d4", "1.e4 e5"]
    assert json.loads(games[0].fens) == ["legacy-fen"]
    assert json.loads(games[1].fens) == ["a", "b"]

    bob = await target.find_user_by_username("bob")
    (bob_game,) = await target.get_games_by_user(bob.id)
    assert bob_game.pgn == ""
    assert bob_game.fens == "[]"


async def test_existing_users_are_reused(legacy_db, target):
    existing_id = await target.insert_user("alice", "already-here")

    report = await migrate_database(legacy_db, target)
    assert report.users_reused == 1
    assert report.users_inserted == 1

    alice = await target.find_user_by_username("alice")
    assert alice.id == existing_id
    assert alice.password_hash == "already-here"
    assert len(await target.get_games_by_user(existing_id)) == 2


async def test_dry_run_writes_nothing(legacy_db, target):
    report = await migrate_database(legacy_db, target, dry_run=True)

    assert report.dry_run
    assert report.users_inserted == 2
    assert report.games_inserted == 3
    assert await target.find_user_by_username("alice") is None


async def test_bad_row_aborts_the_whole_migration(legacy_db, target):
    conn = sqlite3.connect(legacy_db)
    conn.execute(
        "INSERT INTO games (id, user_id, pgn, fens, created_at) VALUES (5, 8, 'x', '[]', 'garbage-date')"
    )
    conn.commit()
    conn.close()

    with pytest.raises(Exception):
        await migrate_database(legacy_db, target)
    assert await target.find_user_by_username("alice") is None


async def test_missing_tables_are_tolerated(tmp_path, target):
    empty = tmp_path / "empty.db"
    sqlite3.connect(empty).close()

    report = await migrate_database(empty, target)
    assert report.users_found == 0
    assert report.games_found == 0


def test_backup_is_a_copy(legacy_db, tmp_path):
    backup = backup_file(legacy_db, tmp_path / "backups")
    assert backup.exists()
    assert backup.name.startswith("hackerChess.db.bak.")
    assert backup.read_bytes() == legacy_db.read_bytes()


def test_cli_dry_run(legacy_db, tmp_path):
    runner = CliRunner()
    result = runner.invoke(
        main,
        [
            "--sqlite-file", str(legacy_db),
            "--backup-dir", str(tmp_path / "backups"),
            "--database-url", f"sqlite:///{tmp_path / 'cli-target.db'}",
            "--dry-run",
        ],
    )
    assert result.exit_code == 0, result.output
    assert "Backup created" in result.output
    assert "would have inserted 2 users and 3 games" in result.output


def test_cli_requires_real_target(legacy_db, tmp_path):
    runner = CliRunner()
    result = runner.invoke(
        main,
        ["--sqlite-file", str(legacy_db), "--backup-dir", str(tmp_path), "--database-url", "memory://"],
    )
    assert result.exit_code != 0
