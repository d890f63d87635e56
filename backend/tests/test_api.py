from horarios.models import ActivityLog


def test_health_reports_database_ready(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["database"]["ok"] is True
    assert body["database"]["missing_tables"] == []


def test_catalog_crud_round(client, db_session):
    created = client.post("/api/unidades-academicas/", json={"name": "Ingenieria"})
    assert created.status_code == 201
    unit_id = created.json()["id"]

    assert client.get(f"/api/unidades-academicas/{unit_id}").json()["name"] == "Ingenieria"

    renamed = client.patch(f"/api/unidades-academicas/{unit_id}", json={"name": "Ingenieria y Ciencias"})
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Ingenieria y Ciencias"

    assert client.delete(f"/api/unidades-academicas/{unit_id}").status_code == 204
    assert client.get(f"/api/unidades-academicas/{unit_id}").status_code == 404

    db_session.expire_all()
    actions = [row.action for row in db_session.query(ActivityLog).order_by(ActivityLog.id)]
    assert actions == ["academic_units.create", "academic_units.update", "academic_units.delete"]


def test_pagination_shape_and_out_of_range_page(client, factory):
    for index in range(25):
        factory.unit(f"Unit {index:02d}")

    first = client.get("/api/unidades-academicas/")
    second = client.get("/api/unidades-academicas/", params={"page": 2})
    beyond = client.get("/api/unidades-academicas/", params={"page": 3})

    assert first.json()["count"] == 25
    assert first.json()["next"] == 2
    assert first.json()["previous"] is None
    assert len(first.json()["results"]) == 20
    assert second.json()["next"] is None
    assert second.json()["previous"] == 1
    assert len(second.json()["results"]) == 5
    assert beyond.status_code == 404
    assert beyond.json()["code"] == "NOT_FOUND"


def test_empty_listing_is_page_one(client):
    response = client.get("/api/docentes/")
    assert response.status_code == 200
    assert response.json() == {"count": 0, "next": None, "previous": None, "results": []}


def test_request_validation_uses_error_envelope(client):
    response = client.post("/api/unidades-academicas/", json={"name": ""})

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["details"]["errors"][0]["field"] == "name"


def test_duplicate_unique_value_is_conflict(client, factory):
    factory.unit("Salud")

    response = client.post("/api/unidades-academicas/", json={"name": "Salud"})

    assert response.status_code == 409
    assert response.json()["code"] == "CONFLICT_ERROR"


def test_unknown_foreign_key_is_rejected(client):
    response = client.post("/api/carreras/", json={"name": "Sistemas", "code": "SIS", "unit_id": 999})

    assert response.status_code == 400
    assert response.json()["details"]["rule"] == "INVALID_REFERENCE"
    assert response.json()["details"]["field"] == "unit_id"


def test_referenced_entity_cannot_be_deleted(client, factory):
    unit = factory.unit()
    factory.career(unit)

    response = client.delete(f"/api/unidades-academicas/{unit.id}")

    assert response.status_code == 409
    assert response.json()["details"]["referenced_by"] == "careers"


def test_time_blocks_accept_clock_strings(client):
    created = client.post(
        "/api/bloques-horarios/",
        json={"name": "Primera", "start_time": "07:00", "end_time": "07:45", "shift": "M", "order": 1},
    )
    assert created.status_code == 201
    assert created.json()["start_time"] == "07:00"

    reversed_block = client.post(
        "/api/bloques-horarios/",
        json={"start_time": "09:00", "end_time": "08:00", "shift": "M"},
    )
    assert reversed_block.status_code == 400

    bad_format = client.post("/api/bloques-horarios/", json={"start_time": "7am", "end_time": "08:00", "shift": "M"})
    assert bad_format.status_code == 400


def test_period_dates_must_be_ordered(client):
    response = client.post(
        "/api/periodos-academicos/",
        json={"name": "2026-2", "start_date": "2026-09-01", "end_date": "2026-08-01"},
    )
    assert response.status_code == 400


def test_subject_links_careers_and_checks_cycle(client, factory):
    unit = factory.unit()
    career = factory.career(unit)
    other = factory.career(unit)
    cycle = factory.cycle(career, 2)

    created = client.post(
        "/api/materias/",
        json={"code": " mat101 ", "name": "Calculo", "theory_hours": 3, "practice_hours": 1, "career_ids": [career.id], "cycle_id": cycle.id},
    )
    assert created.status_code == 201
    body = created.json()
    assert body["code"] == "MAT101"
    assert body["total_hours"] == 4
    assert body["career_ids"] == [career.id]

    shared = client.post(
        "/api/materias/",
        json={"code": "MAT102", "name": "Algebra", "theory_hours": 2, "career_ids": [career.id, other.id], "cycle_id": cycle.id},
    )
    assert shared.status_code == 400
    assert shared.json()["details"]["field"] == "cycle_id"

    foreign_cycle = client.post(
        "/api/materias/",
        json={"code": "MAT103", "name": "Fisica", "theory_hours": 2, "career_ids": [other.id], "cycle_id": cycle.id},
    )
    assert foreign_cycle.status_code == 400

    filtered = client.get("/api/materias/", params={"career_id": other.id})
    assert filtered.json()["count"] == 0


def test_teacher_create_and_search(client, factory):
    specialty = factory.specialty("Redes")
    created = client.post(
        "/api/docentes/",
        json={
            "code": "D-01",
            "first_names": "Ana",
            "last_names": "Paredes",
            "email": "ana.paredes@example.com",
            "contract_type": "MT",
            "specialty_ids": [specialty.id, specialty.id],
        },
    )
    assert created.status_code == 201
    assert created.json()["full_name"] == "Ana Paredes"
    assert created.json()["specialty_ids"] == [specialty.id]

    bad_email = client.post(
        "/api/docentes/",
        json={"code": "D-02", "first_names": "Luis", "last_names": "Mora", "email": "not-an-email"},
    )
    assert bad_email.status_code == 400


def test_partial_update_refuses_null_for_required_columns(client, factory, db_session):
    teacher = factory.teacher(max_weekly_hours=12)
    unit = factory.unit("Ingenieria")

    response = client.patch(f"/api/docentes/{teacher.id}", json={"max_weekly_hours": None})
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"
    assert response.json()["details"] == {"field": "max_weekly_hours"}

    catalog = client.patch(f"/api/unidades-academicas/{unit.id}", json={"name": None})
    assert catalog.status_code == 400
    assert catalog.json()["details"] == {"field": "name"}

    db_session.expire_all()
    assert db_session.get(type(teacher), teacher.id).max_weekly_hours == 12
    assert client.get(f"/api/unidades-academicas/{unit.id}").json()["name"] == "Ingenieria"


def test_restriction_accepts_spanish_fields(client, factory):
    period = factory.period()
    teacher = factory.teacher()

    created = client.post(
        "/api/configuracion-restricciones/",
        json={
            "codigo_restriccion": "r-lunes",
            "tipo_aplicacion": "RESTRICCION_DIA_DOCENTE",
            "entidad_id_1": teacher.id,
            "valor_parametro": 1,
            "periodo_aplicable": period.id,
        },
    )

    assert created.status_code == 201
    body = created.json()
    assert body["code"] == "R-LUNES"
    assert body["severity"] == "hard"
    assert body["is_active"] is True

    soft = client.post(
        "/api/configuracion-restricciones/",
        json={"code": "pref", "kind": "PREFERENCIA_TURNO_GRUPO", "entity_id_1": 1},
    )
    assert soft.json()["severity"] == "soft"

    listing = client.get("/api/configuracion-restricciones/", params={"kind": "PREFERENCIA_TURNO_GRUPO"})
    assert listing.json()["count"] == 1


def test_unknown_route_and_unknown_id(client):
    assert client.get("/api/grupos/12345").status_code == 404
    assert client.get("/api/grupos/12345").json()["details"] == {"resource": "Group", "id": 12345}
