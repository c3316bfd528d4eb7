"""
Tests for snapshot export and full-replace import.
"""

import pytest

from cooperativa.application.snapshot_service import SnapshotService
from cooperativa.domain.models import Actividad, Horario, Persona, Ropa, TableName
from cooperativa.domain.snapshot import Snapshot
from cooperativa.domain.tables import ACTIVITY_TABLES, SIMPLE_TABLES
from cooperativa.infrastructure.excel import build_workbook, parse_workbook

from conftest import change_log_rows


@pytest.fixture
def service(store, change_log):
    return SnapshotService(store, change_log)


@pytest.fixture
def populated(container):
    container.clothing.create(3, "verano", "M")
    container.jovenes.create("Leo", "Ruiz")
    alumno = container.alumnos.create("Ana", "Pérez")
    container.families.create("Gómez", 4)
    container.donations.create("Alimentos", 10)
    coro = container.activities.create("Coro", [Horario("lunes", "18:00", "19:00")])
    container.activities.create("Ajedrez")
    container.assignments.set_activity_assignments(coro.id, [alumno.id])
    session = container.attendance.create_session(coro.id, "2024-03-05", "18:00", "19:00")
    container.attendance.set_held(session.id, True)
    container.attendance.save_attendance_detail(session.id, [(alumno.id, "presente")])
    return container


class TestExport:
    def test_reads_every_table(self, populated):
        snapshot = populated.snapshot_service.export_snapshot()

        assert snapshot.counts() == {
            TableName.ROPA: 1,
            TableName.JOVENES: 1,
            TableName.ALUMNOS: 1,
            TableName.FAMILIAS: 1,
            TableName.DONACIONES: 1,
            TableName.ACTIVIDADES: 2,
            TableName.ALUMNO_ACTIVIDADES: 1,
            TableName.ACTIVIDAD_ASISTENCIAS: 1,
            TableName.ACTIVIDAD_ASISTENCIA_DETALLE: 1,
        }

    def test_activities_by_name_without_timestamps(self, populated):
        snapshot = populated.snapshot_service.export_snapshot()

        assert [a.nombre for a in snapshot.actividades] == ["Ajedrez", "Coro"]
        assert all(a.created_at is None and a.updated_at is None for a in snapshot.actividades)
        assert snapshot.actividad_asistencias[0].se_dicto is True

    def test_empty_store(self, service):
        snapshot = service.export_snapshot()
        assert snapshot == Snapshot()
        assert snapshot.total_rows == 0

    def test_single_worker(self, populated, store, change_log):
        serial = SnapshotService(store, change_log, max_workers=1).export_snapshot()
        assert serial == populated.snapshot_service.export_snapshot()


class TestImport:
    def test_round_trip_through_workbook(self, populated, store, change_log):
        exported = populated.snapshot_service.export_snapshot()
        data = build_workbook(exported)

        populated.clothing.create(9, "invierno", "XL")
        populated.activities.create("Teatro")

        counts = SnapshotService(store, change_log).import_snapshot(parse_workbook(data))

        assert populated.snapshot_service.export_snapshot() == exported
        assert counts[TableName.ROPA] == 1
        assert counts[TableName.ACTIVIDADES] == 2

    def test_one_bulk_sync_entry_per_table(self, service, store):
        service.import_snapshot(Snapshot(ropa=[Ropa(id=5, cantidad=1, tipo="verano", talle="S")]))

        log = change_log_rows(store)
        assert [row["tabla"] for row in log] == [t.value for t in (*SIMPLE_TABLES, *ACTIVITY_TABLES)]
        assert all(row["accion"] == "UPDATE" and row["registro_id"] is None for row in log)
        assert log[0]["payload"] == {"accion": "bulk-sync", "total": 1}
        assert log[1]["payload"] == {"accion": "bulk-sync", "total": 0}

    def test_ids_are_preserved(self, service, store):
        service.import_snapshot(
            {
                "alumnos": [{"id": 10, "nombre": "Ana", "apellido": "Pérez"}, {"nombre": "Beto", "apellido": "Sosa"}],
            }
        )

        rows = store.list_rows("alumnos")
        assert [(row["id"], row["nombre"]) for row in rows] == [(10, "Ana"), (11, "Beto")]

    def test_missing_tables_are_cleared(self, populated, store):
        populated.snapshot_service.import_snapshot({"ropa": [Ropa(id=1, cantidad=2, tipo="verano", talle="S")]})

        assert [row["cantidad"] for row in store.list_rows("ropa")] == [2]
        for table in TableName:
            if table is not TableName.ROPA:
                assert store.list_rows(table) == [], table

    def test_invalid_rows_are_dropped(self, service, store):
        counts = service.import_snapshot(
            {
                "familias": [{"id": 1, "apellido": "Gómez", "miembros": "abc"}, {"id": 2, "apellido": "Sosa", "miembros": 3}],
                "actividades": [Actividad(id=1, nombre="  ")],
            }
        )

        assert counts[TableName.FAMILIAS] == 1
        assert counts[TableName.ACTIVIDADES] == 0
        assert [row["id"] for row in store.list_rows("familias")] == [2]

    def test_oversized_quantity_is_dropped_not_raised(self, service, store):
        counts = service.import_snapshot(
            {"ropa": [{"id": 1, "cantidad": 10**20, "tipo": "verano", "talle": "M"}, {"id": 2, "cantidad": 1, "tipo": "verano", "talle": "S"}]}
        )

        assert counts[TableName.ROPA] == 1
        assert [row["id"] for row in store.list_rows("ropa")] == [2]

    def test_activity_tables_cleared_children_first(self, populated, recording_store, change_log):
        service = SnapshotService(recording_store, change_log)

        service.import_snapshot(Snapshot())

        cleared = [call[1] for call in recording_store.calls_to("delete_where")]
        assert cleared == [t.value for t in SIMPLE_TABLES] + [t.value for t in reversed(ACTIVITY_TABLES)]

    def test_reimport_converges(self, service, store):
        snapshot = Snapshot(
            jovenes=[Persona(id=1, nombre="Leo", apellido="Ruiz")],
            actividades=[Actividad(id=3, nombre="Coro", horarios=[Horario("viernes", "10:00", "11:00")])],
        )

        service.import_snapshot(snapshot)
        first = service.export_snapshot()
        service.import_snapshot(snapshot)

        assert service.export_snapshot() == first == snapshot

    def test_unknown_table_in_mapping(self, service):
        with pytest.raises(ValueError):
            service.import_snapshot({"usuarios": []})
