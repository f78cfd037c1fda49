"""Tests for MigrateService, MigrationPlanner, and MigrationExecutor."""

import pytest

from kan.services import MigrateService, MigrationError, MigrationPlanner

LEGACY_BOARD = """name = "main"

[[columns]]
name = "backlog"
card_ids = []

[[columns]]
name = "done"
card_ids = ["a"]
"""


@pytest.fixture
def service(tree):
    return MigrateService(tree.paths)


def migrate(service, dry_run=False):
    return service.execute(service.plan(), dry_run=dry_run)


class TestPlanning:
    """Tests for building a migration plan."""

    def test_empty_project(self, tree, service):
        """No files means nothing to migrate."""
        plan = service.plan()
        assert plan.global_config is None
        assert plan.project_config is None
        assert plan.boards == []
        assert not plan.has_changes()

    def test_legacy_board_and_card(self, tree, service):
        """An unstamped board and a v0 card are both planned."""
        tree.write_board_text("main", LEGACY_BOARD)
        tree.write_card("main", "a", {"id": "a", "title": "A", "column": "done"})

        plan = service.plan()

        (board,) = plan.boards
        assert board.needs_migration
        assert board.from_schema is None
        assert board.from_version == 0
        assert board.to_schema == "board/3"
        (card,) = board.cards_to_migrate
        assert card.card_id == "a"
        assert card.from_version == 0
        assert card.remove_column

    def test_current_data_needs_nothing(self, tree, service):
        """Current stamps produce no changes."""
        tree.write_board("main", {"backlog": ["a"]})
        tree.write_card("main", "a")
        tree.write_global('kan_schema = "global/1"\n')
        tree.write_project('kan_schema = "project/1"\nid = "p1"\n')

        plan = service.plan()

        assert not plan.has_changes()
        assert plan.errors == []

    def test_current_card_with_column_needs_migration(self, tree, service):
        """A stray column key is removed even at the current _v."""
        tree.write_board("main", {"backlog": ["a"]})
        tree.write_card("main", "a", tree.card("a", column="backlog"))

        (board,) = service.plan().boards

        assert not board.needs_migration
        assert [c.card_id for c in board.cards_to_migrate] == ["a"]

    def test_malformed_stamp_is_version_zero(self, tree, service):
        """An unparseable stamp migrates from version 0."""
        tree.write_board("main", schema="board/x")

        (board,) = service.plan().boards

        assert board.from_schema == "board/x"
        assert board.from_version == 0
        assert board.needs_migration

    def test_newer_board_is_not_downgraded(self, tree, service):
        """A board from a newer release is an error, not a migration."""
        tree.write_board("main", schema="board/9")

        plan = service.plan()

        (board,) = plan.boards
        assert not board.needs_migration
        assert "requires Kan >=" in board.error
        assert len(plan.errors) == 1

    def test_newer_card_is_not_downgraded(self, tree, service):
        """A card from a newer release is an error, not a migration."""
        tree.write_board("main", {"backlog": ["a"]})
        tree.write_card("main", "a", tree.card("a", _v=5))

        plan = service.plan()

        assert plan.boards[0].cards_to_migrate == []
        assert plan.boards[0].cards[0].error is not None

    def test_unreadable_files_are_recorded(self, tree, service):
        """Broken files become plan errors while siblings are still planned."""
        tree.write_board_text("broken", "name = \n")
        tree.write_board_text("main", LEGACY_BOARD)
        tree.write_card_text("main", "bad", "{not json")
        tree.write_card("main", "a", {"id": "a", "column": "done"})

        plan = service.plan()

        broken, main = plan.boards
        assert broken.error is not None
        assert main.error is None
        assert len(main.cards_to_migrate) == 1
        assert len(plan.errors) == 2

    def test_card_id_falls_back_to_file_stem(self, tree, service):
        """Cards without an id are named by their file."""
        tree.write_board("main")
        tree.write_card("main", "x1", {"title": "no id"})

        (card,) = service.plan().boards[0].cards

        assert card.card_id == "x1"

    def test_unlistable_boards_dir_raises(self, tree, monkeypatch):
        """Failing to list boards aborts planning."""
        tree.write_board("main")

        def fail():
            raise PermissionError("denied")

        monkeypatch.setattr(tree.paths, "list_boards", fail)
        with pytest.raises(MigrationError, match="failed to list boards"):
            MigrationPlanner(tree.paths).plan()

    def test_unlistable_cards_dir_raises(self, tree, monkeypatch):
        """Failing to list a board's cards aborts planning."""
        tree.write_board("main")
        planner = MigrationPlanner(tree.paths)

        def fail(cards_dir):
            raise PermissionError("denied")

        monkeypatch.setattr(planner._reader, "list_card_ids", fail)
        with pytest.raises(MigrationError, match="failed to list cards"):
            planner.plan()

    def test_config_plans(self, tree, service):
        """Global and project configs are planned from their stamps."""
        tree.write_global('editor = "vim"\n')
        tree.write_project('kan_schema = "project/1"\n')

        plan = service.plan()

        assert plan.global_config.needs_migration
        assert plan.global_config.from_schema is None
        assert not plan.project_config.needs_migration

    def test_plan_boards_only_skips_global(self, tree, service):
        """Per-project planning leaves the global config out."""
        tree.write_global('editor = "vim"\n')
        tree.write_project('id = "p1"\n')

        plan = service.plan_boards_only()

        assert plan.global_config is None
        assert plan.project_config.needs_migration

    def test_plan_global_only(self, tree, service):
        """Global-only planning ignores project data."""
        tree.write_global('editor = "vim"\n')
        tree.write_board_text("main", LEGACY_BOARD)

        plan = service.plan_global_only()

        assert plan.global_config.needs_migration
        assert plan.boards == []


class TestExecution:
    """Tests for applying a migration plan."""

    def test_migrates_legacy_board_and_card(self, tree, service):
        """Column membership stays on the board and the card loses its column."""
        tree.write_board_text("main", LEGACY_BOARD)
        tree.write_card("main", "a", {"id": "a", "title": "A", "column": "done"})

        result = migrate(service)

        assert result.actions == ['Migrated board "main" (config + 1 cards)']
        assert result.migrated_boards == 1
        assert not result.has_errors
        board = tree.read_board("main")
        assert board["kan_schema"] == "board/3"
        assert tree.column_ids("main") == {"backlog": [], "done": ["a"]}
        assert tree.read_card("main", "a") == {"_v": 1, "id": "a", "title": "A"}

    def test_labels_become_custom_field(self, tree, service):
        """A v1 board walks the whole chain including the labels transform."""
        tree.write_board_text(
            "main",
            'kan_schema = "board/1"\nname = "main"\n\n'
            '[[labels]]\nname = "bug"\ncolor = "#ff0000"\n\n'
            '[[columns]]\nname = "backlog"\n',
        )

        migrate(service)

        board = tree.read_board("main")
        assert list(board)[0] == "kan_schema"
        assert board["kan_schema"] == "board/3"
        assert "labels" not in board
        assert board["custom_fields"]["labels"] == {
            "type": "tags",
            "options": [{"value": "bug", "color": "#ff0000"}],
        }
        assert board["card_display"]["badges"] == ["labels"]

    def test_stamp_only_chain_preserves_bytes(self, tree, service):
        """Stamp-only upgrades rewrite just the stamp line."""
        original = (
            'kan_schema = "board/2"\n'
            "# keep me\n"
            'name   =   "main"  # aligned\n\n'
            '[[columns]]\nname = "backlog"\n'
        )
        path = tree.write_board_text("main", original)

        migrate(service)

        assert path.read_text() == original.replace("board/2", "board/3")

    def test_unstamped_config_keeps_original_suffix(self, tree, service):
        """Stamping a config only prepends the stamp."""
        original = b'# my settings\neditor   = "vim"\n\n[repos."/src/app"]\ndefault_board = "main"\n'
        path = tree.write_global(original.decode())

        result = migrate(service)

        assert result.actions == ["Migrated global config"]
        content = path.read_bytes()
        assert content.endswith(original)
        assert content.startswith(b'kan_schema = "global/1"\n')

    def test_project_config(self, tree, service):
        """The project config gets its stamp."""
        tree.write_project('id = "p1"\nname = "demo"\n')

        result = migrate(service)

        assert result.actions == ["Migrated project config"]
        assert tree.paths.project_config_path.read_text().startswith('kan_schema = "project/1"')

    def test_cards_only(self, tree, service):
        """A current board with old cards reports only the cards."""
        tree.write_board("main", {"backlog": ["a", "b"]})
        for card_id in ("a", "b"):
            data = tree.card(card_id)
            del data["_v"]
            tree.write_card("main", card_id, data)

        result = migrate(service)

        assert result.actions == ['Migrated board "main" (2 cards)']
        assert tree.read_card("main", "a")["_v"] == 1

    def test_idempotent(self, tree, service):
        """A second run finds nothing and changes nothing."""
        tree.write_board_text("main", LEGACY_BOARD)
        tree.write_card("main", "a", {"id": "a", "column": "done"})
        tree.write_global('editor = "vim"\n')
        migrate(service)
        before = tree.snapshot()

        plan = service.plan()
        result = service.execute(plan)

        assert not plan.has_changes()
        assert result.actions == []
        assert tree.snapshot() == before

    def test_dry_run_writes_nothing(self, tree, service):
        """Dry runs only describe the changes."""
        tree.write_board_text("main", LEGACY_BOARD)
        tree.write_card("main", "a", {"id": "a", "column": "done"})
        tree.write_global('editor = "vim"\n')
        before = tree.snapshot()

        result = migrate(service, dry_run=True)

        assert tree.snapshot() == before
        assert result.dry_run
        assert result.migrated_boards == 0
        assert result.actions == [
            'Would migrate global config: add kan_schema = "global/1"',
            'Would migrate board "main" config: add kan_schema = "board/3"',
            'Would migrate 1 cards in board "main": set _v=1, remove column',
        ]

    def test_dry_run_describes_stamp_change(self, tree, service):
        """An existing stamp is shown as old -> new."""
        tree.write_board("main", schema="board/2")

        result = migrate(service, dry_run=True)

        assert result.actions == [
            'Would migrate board "main" config: kan_schema "board/2" -> "board/3"'
        ]

    def test_failed_card_does_not_stop_siblings(self, tree, service):
        """A card that fails is reported and the others still migrate."""
        tree.write_board("main", {"backlog": ["a", "b"]})
        tree.write_card("main", "a", {"id": "a", "column": "backlog"})
        tree.write_card("main", "b", {"id": "b", "column": "backlog"})
        plan = service.plan()
        tree.paths.card_path("main", "a").write_text("[]")

        result = service.execute(plan)

        assert len(result.errors) == 1
        assert 'card "a"' in result.errors[0]
        assert result.actions == ['Migrated board "main" (1 cards)']
        assert tree.read_card("main", "b") == {"_v": 1, "id": "b"}

    def test_failed_board_does_not_stop_other_boards(self, tree, service):
        """A board config that breaks after planning fails alone."""
        tree.write_board_text("alpha", LEGACY_BOARD)
        tree.write_board_text("beta", LEGACY_BOARD)
        plan = service.plan()
        tree.write_board_text("alpha", "name = \n")

        result = service.execute(plan)

        assert len(result.errors) == 1
        assert 'board "alpha"' in result.errors[0]
        assert result.actions == ['Migrated board "beta" (config)']
        assert tree.read_board("beta")["kan_schema"] == "board/3"

    def test_newer_board_untouched(self, tree, service):
        """Files from a newer release keep their bytes."""
        tree.write_board("main", schema="board/9")
        before = tree.snapshot()

        result = migrate(service)

        assert result.actions == []
        assert tree.snapshot() == before
