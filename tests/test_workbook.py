"""
Tests for the workbook codec.
"""

from datetime import date, time
from io import BytesIO

import pytest
from openpyxl import load_workbook

from cooperativa.domain.models import (
    Actividad,
    AlumnoActividad,
    Asistencia,
    AsistenciaDetalle,
    Familia,
    Horario,
    Persona,
    Ropa,
    TableName,
)
from cooperativa.domain.snapshot import Snapshot
from cooperativa.domain.tables import TABLE_REGISTRY
from cooperativa.infrastructure.excel import (
    TEMPLATE_INFO,
    WorkbookFormatError,
    build_workbook,
    build_workbook_base64,
    decode_base64,
    parse_workbook,
    parse_workbook_base64,
)

from conftest import make_workbook


@pytest.fixture
def snapshot():
    return Snapshot(
        ropa=[Ropa(id=1, cantidad=3, tipo="verano", talle="M")],
        alumnos=[Persona(id=4, nombre="Ana", apellido="Pérez")],
        familias=[Familia(id=2, apellido="Gómez", miembros=5)],
        actividades=[Actividad(id=1, nombre="Coro", horarios=[Horario("lunes", "18:00", "19:00")])],
        alumno_actividades=[AlumnoActividad(id=1, actividad_id=1, alumno_id=4)],
        actividad_asistencias=[
            Asistencia(id=3, actividad_id=1, fecha="2024-03-05", hora_inicio="18:00", se_dicto=True)
        ],
        actividad_asistencia_detalle=[AsistenciaDetalle(id=1, asistencia_id=3, alumno_id=4, estado="presente")],
    )


def _open(data: bytes):
    return load_workbook(BytesIO(data))


class TestBuild:
    def test_every_table_gets_a_sheet_in_order(self):
        wb = _open(build_workbook(Snapshot()))

        assert wb.sheetnames == [spec.sheet_name for spec in TABLE_REGISTRY.values()]
        for spec in TABLE_REGISTRY.values():
            header = [cell.value for cell in wb[spec.sheet_name][1]]
            assert header == list(spec.column_names)

    def test_cell_encoding(self, snapshot):
        wb = _open(build_workbook(snapshot))

        actividades = wb["Actividades"]
        assert actividades["B2"].value == "Coro"
        assert actividades["C2"].value == '[{"dia": "lunes", "hora_inicio": "18:00", "hora_fin": "19:00"}]'

        sesiones = wb["Actividad Asistencias"]
        assert [cell.value for cell in sesiones[2]] == [3, 1, "2024-03-05", "18:00", None, "true"]

    def test_round_trip(self, snapshot):
        assert parse_workbook(build_workbook(snapshot)) == snapshot

    def test_text_starting_with_equals_stays_text(self):
        snapshot = Snapshot(
            jovenes=[Persona(id=1, nombre="=Ana", apellido="=SUM(A1:A3)")],
            ropa=[Ropa(id=2, cantidad=1, tipo="verano", talle="=M")],
        )
        data = build_workbook(snapshot)

        cell = _open(data)["Jovenes"]["B2"]
        assert cell.data_type == "s"
        assert cell.value == "=Ana"
        assert parse_workbook(data) == snapshot

    def test_base64_round_trip(self, snapshot):
        text = build_workbook_base64(snapshot)

        assert isinstance(text, str)
        assert parse_workbook_base64(text) == snapshot


class TestParse:
    def test_hand_edited_workbook(self):
        data = make_workbook(
            {
                " ropa ": [
                    [" ID ", "Cantidad", "TIPO", "talle"],
                    [1, "4", "Verano", "L"],
                    [2, 2.0, "otoño", 38],
                    [None, None, None, None],
                    [3, 0, "verano", "S"],
                ],
                "Familias": [
                    ["id", "apellido", "miembros"],
                    [1, "Gómez", 4],
                    [2, "López", "abc"],
                    [3, "  ", 2],
                ],
                "Actividades": [
                    ["id", "nombre", "horarios"],
                    [1, "Coro", "no es json"],
                    [2, "Teatro", '[{"dia": "Martes", "hora_inicio": "5:00 PM", "hora_fin": "18:00"}]'],
                ],
                "Actividad Asistencias": [
                    ["id", "actividad_id", "fecha", "hora_inicio", "hora_fin", "se_dicto"],
                    [1, 1, date(2024, 3, 5), time(9, 0), "10:00", "si"],
                    [2, 1, "05-03-2024", None, None, None],
                    [3, 1, "ayer", None, None, "true"],
                ],
                "Actividad Asistencia Detalle": [
                    ["id", "asistencia_id", "alumno_id", "estado"],
                    [1, 1, 4, "PRESENTE"],
                    [2, 1, 5, "tarde"],
                    [3, None, 6, "presente"],
                ],
            }
        )

        snapshot = parse_workbook(data)

        assert snapshot.ropa == [
            Ropa(id=1, cantidad=4, tipo="verano", talle="L"),
            Ropa(id=2, cantidad=2, tipo="invierno", talle="38"),
        ]
        assert snapshot.familias == [Familia(id=1, apellido="Gómez", miembros=4)]
        assert snapshot.actividades == [
            Actividad(id=1, nombre="Coro", horarios=[]),
            Actividad(id=2, nombre="Teatro", horarios=[Horario("martes", "17:00", "18:00")]),
        ]
        assert [(s.id, s.fecha, s.hora_inicio, s.hora_fin, s.se_dicto) for s in snapshot.actividad_asistencias] == [
            (1, "2024-03-05", "09:00", "10:00", True),
            (2, "2024-03-05", None, None, False),
        ]
        assert [(d.alumno_id, d.estado) for d in snapshot.actividad_asistencia_detalle] == [
            (4, "presente"),
            (5, "ausente"),
        ]

    def test_out_of_range_numbers_are_invalid(self):
        data = make_workbook(
            {
                "Ropa": [
                    ["id", "cantidad", "tipo", "talle"],
                    [1, 1e20, "verano", "M"],
                    [2e19, 2, "verano", "S"],
                    [3, 3, "invierno", "L"],
                ]
            }
        )

        assert parse_workbook(data).ropa == [
            Ropa(id=None, cantidad=2, tipo="verano", talle="S"),
            Ropa(id=3, cantidad=3, tipo="invierno", talle="L"),
        ]

    def test_missing_sheets_are_empty(self):
        data = make_workbook({"Jovenes": [["id", "nombre", "apellido"], [1, "Leo", "Ruiz"]], "Notas": [["x"]]})

        snapshot = parse_workbook(data)

        assert snapshot.jovenes == [Persona(id=1, nombre="Leo", apellido="Ruiz")]
        assert snapshot.counts()[TableName.JOVENES] == 1
        assert snapshot.total_rows == 1

    def test_missing_column_drops_rows_only_if_required(self):
        data = make_workbook(
            {
                "Alumnos": [["nombre", "apellido"], ["Ana", "Pérez"]],
                "Donaciones": [["id", "tipo"], [1, "Alimentos"]],
            }
        )

        snapshot = parse_workbook(data)

        assert snapshot.alumnos == [Persona(id=None, nombre="Ana", apellido="Pérez")]
        assert snapshot.donaciones == []

    def test_empty_sheet_without_header(self):
        assert parse_workbook(make_workbook({"Ropa": []})).ropa == []

    @pytest.mark.parametrize("data", [b"", b"not a workbook", b"PK\x03\x04garbage"])
    def test_not_a_workbook(self, data):
        with pytest.raises(WorkbookFormatError, match="No se pudo leer el archivo Excel"):
            parse_workbook(data)

    def test_format_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_workbook(b"plain text")


class TestBase64:
    def test_whitespace_is_ignored(self, snapshot):
        text = build_workbook_base64(snapshot)
        wrapped = "\n".join(text[i : i + 76] for i in range(0, len(text), 76))

        assert parse_workbook_base64(wrapped) == snapshot

    def test_invalid_base64(self):
        with pytest.raises(WorkbookFormatError, match="base64"):
            decode_base64("***not base64***")


def test_template_info_matches_registry():
    assert TEMPLATE_INFO["sheet_names"]["actividad_asistencia_detalle"] == "Actividad Asistencia Detalle"
    assert TEMPLATE_INFO["columns"]["ropa"] == ["id", "cantidad", "tipo", "talle"]
    assert TEMPLATE_INFO["columns"]["actividades"] == ["id", "nombre", "horarios"]
    assert len(TEMPLATE_INFO["sheet_names"]) == 9
