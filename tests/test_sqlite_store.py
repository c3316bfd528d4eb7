"""
Tests for the SQLite table store.
"""

import pytest

from cooperativa.domain.models import CHANGE_LOG_TABLE, TableName
from cooperativa.infrastructure.store import SqliteTableStore, StoreError, StoreErrorKind


def test_initialize_schema_is_repeatable(tmp_path):
    store = SqliteTableStore(tmp_path / "nested" / "coop.db")
    store.initialize_schema()
    store.initialize_schema()

    assert store.list_rows(TableName.ROPA) == []
    assert (tmp_path / "nested" / "coop.db").exists()
    store.close()


class TestCrud:
    def test_insert_assigns_id(self, store):
        first = store.insert("ropa", {"cantidad": 3, "tipo": "verano", "talle": "M"})
        second = store.insert(TableName.ROPA, {"cantidad": 1, "tipo": "invierno", "talle": "S"})

        assert first == {"id": 1, "cantidad": 3, "tipo": "verano", "talle": "M"}
        assert second["id"] == 2

    def test_json_and_bool_columns_round_trip(self, store):
        horarios = [{"dia": "lunes", "hora_inicio": "09:00", "hora_fin": "10:00"}]
        actividad = store.insert("actividades", {"nombre": "Coro", "horarios": horarios})
        sesion = store.insert(
            "actividad_asistencias",
            {"actividad_id": actividad["id"], "fecha": "2024-03-05", "se_dicto": True},
        )

        assert store.list_rows("actividades")[0]["horarios"] == horarios
        assert store.list_rows("actividad_asistencias")[0]["se_dicto"] is True
        assert sesion["hora_inicio"] is None

    def test_timestamps_are_stamped_by_the_store(self, store):
        row = store.insert("actividades", {"nombre": "Coro", "horarios": [], "created_at": "1999-01-01"})

        assert row["created_at"] and row["created_at"] != "1999-01-01"
        assert row["updated_at"] == row["created_at"]

        updated = store.update("actividades", row["id"], {"nombre": "Coro infantil"})
        assert updated["created_at"] == row["created_at"]
        assert updated["updated_at"] >= row["updated_at"]

    def test_update_missing_row_is_not_found(self, store):
        with pytest.raises(StoreError) as excinfo:
            store.update("ropa", 99, {"cantidad": 2})
        assert excinfo.value.kind is StoreErrorKind.NOT_FOUND

    def test_delete_returns_deleted_row(self, store):
        row = store.insert("familias", {"apellido": "Gómez", "miembros": 4})

        assert store.delete("familias", row["id"]) == row
        assert store.delete("familias", row["id"]) is None
        assert store.list_rows("familias") == []

    def test_required_column_is_enforced(self, store):
        with pytest.raises(StoreError) as excinfo:
            store.insert("alumnos", {"nombre": "Ana"})
        assert excinfo.value.kind is StoreErrorKind.CONSTRAINT

    def test_unknown_column_and_table(self, store):
        with pytest.raises(StoreError):
            store.insert("ropa", {"color": "rojo"})
        with pytest.raises(StoreError):
            store.list_rows("inexistente")

    def test_integer_overflow_is_a_constraint_error(self, store):
        with pytest.raises(StoreError) as excinfo:
            store.insert("ropa", {"cantidad": 10**20, "tipo": "verano", "talle": "M"})
        assert excinfo.value.kind is StoreErrorKind.CONSTRAINT
        assert store.list_rows("ropa") == []

    def test_overflow_in_upsert_rolls_back(self, store):
        with pytest.raises(StoreError):
            store.upsert(
                "donaciones",
                [{"id": 1, "tipo": "Ropa", "cantidad": 2}, {"id": 2, "tipo": "Ropa", "cantidad": 10**20}],
            )
        assert store.list_rows("donaciones") == []

    def test_foreign_keys_are_not_enforced(self, store):
        row = store.insert("alumno_actividades", {"actividad_id": 42, "alumno_id": 7})
        assert row["actividad_id"] == 42


class TestQueries:
    @pytest.fixture
    def people(self, store):
        for nombre in ("Carla", "Ana", "Beto", "Dani"):
            store.insert("alumnos", {"nombre": nombre, "apellido": "X"})
        return store

    def test_order_and_limit(self, people):
        names = [row["nombre"] for row in people.list_rows("alumnos", order_by="nombre", descending=True, limit=2)]
        assert names == ["Dani", "Carla"]

    def test_where_scalar_and_collection(self, people):
        assert [r["id"] for r in people.list_rows("alumnos", where={"nombre": "Beto"})] == [3]
        assert [r["id"] for r in people.list_rows("alumnos", where={"id": [1, 4, 99]})] == [1, 4]

    def test_empty_collection_matches_nothing(self, people):
        assert people.list_rows("alumnos", where={"id": []}) == []
        assert people.delete_where("alumnos", {"id": []}) == 0
        assert len(people.list_rows("alumnos")) == 4

    def test_delete_where(self, people):
        assert people.delete_where("alumnos", {"id": [1, 2]}) == 2
        assert people.delete_where("alumnos") == 2
        assert people.list_rows("alumnos") == []


class TestUpsert:
    def test_upsert_by_id_updates_and_inserts(self, store):
        store.insert("donaciones", {"tipo": "Ropa", "cantidad": 2})

        store.upsert(
            "donaciones",
            [
                {"id": 1, "tipo": "Alimentos", "cantidad": 5},
                {"id": 10, "tipo": "Útiles", "cantidad": 1},
                {"tipo": "Juguetes", "cantidad": 3},
            ],
        )

        rows = store.list_rows("donaciones")
        assert [(r["id"], r["tipo"], r["cantidad"]) for r in rows] == [
            (1, "Alimentos", 5),
            (10, "Útiles", 1),
            (11, "Juguetes", 3),
        ]

    def test_upsert_on_composite_key(self, store):
        key = ("asistencia_id", "alumno_id")
        store.upsert(
            "actividad_asistencia_detalle",
            [{"asistencia_id": 1, "alumno_id": 1, "estado": "ausente"}],
            conflict_key=key,
        )
        store.upsert(
            "actividad_asistencia_detalle",
            [
                {"asistencia_id": 1, "alumno_id": 1, "estado": "presente"},
                {"asistencia_id": 1, "alumno_id": 2, "estado": "ausente"},
            ],
            conflict_key=key,
        )

        rows = store.list_rows("actividad_asistencia_detalle")
        assert [(r["alumno_id"], r["estado"]) for r in rows] == [(1, "presente"), (2, "ausente")]
        assert rows[0]["id"] == 1

    def test_duplicate_pair_is_a_constraint_error(self, store):
        store.insert("actividad_asistencia_detalle", {"asistencia_id": 1, "alumno_id": 1, "estado": "presente"})
        with pytest.raises(StoreError) as excinfo:
            store.insert("actividad_asistencia_detalle", {"asistencia_id": 1, "alumno_id": 1, "estado": "ausente"})
        assert excinfo.value.kind is StoreErrorKind.CONSTRAINT

    def test_rejected_row_rejects_whole_call(self, store):
        with pytest.raises(StoreError):
            store.upsert("jovenes", [{"id": 1, "nombre": "Ana", "apellido": "P"}, {"id": 2, "nombre": None, "apellido": "Q"}])
        assert store.list_rows("jovenes") == []


class TestChangeFeed:
    def test_callbacks_fire_per_table(self, store):
        calls = []
        store.subscribe_changes("ropa", lambda: calls.append("ropa"))
        store.subscribe_changes(CHANGE_LOG_TABLE, lambda: calls.append("log"))

        store.insert("ropa", {"cantidad": 1, "tipo": "verano", "talle": "L"})
        store.insert("jovenes", {"nombre": "Leo", "apellido": "R"})

        assert calls == ["ropa"]

    def test_callback_sees_committed_data(self, store):
        seen = []
        store.subscribe_changes("ropa", lambda: seen.append(len(store.list_rows("ropa"))))

        store.insert("ropa", {"cantidad": 1, "tipo": "verano", "talle": "L"})

        assert seen == [1]

    def test_unsubscribe(self, store):
        calls = []
        unsubscribe = store.subscribe_changes("ropa", lambda: calls.append(1))
        unsubscribe()
        unsubscribe()

        store.insert("ropa", {"cantidad": 1, "tipo": "verano", "talle": "L"})
        assert calls == []

    def test_failing_callback_does_not_reach_writer(self, store):
        def broken():
            raise RuntimeError("boom")

        calls = []
        store.subscribe_changes("ropa", broken)
        store.subscribe_changes("ropa", lambda: calls.append(1))

        row = store.insert("ropa", {"cantidad": 1, "tipo": "verano", "talle": "L"})

        assert row["id"] == 1
        assert calls == [1]

    def test_no_notification_when_nothing_deleted(self, store):
        calls = []
        store.subscribe_changes("ropa", lambda: calls.append(1))

        store.delete_where("ropa")
        store.delete("ropa", 5)

        assert calls == []
