"""
Tests for the patient records endpoints.
"""
import pytest

PATIENTS_URL = "/api/v1/patients"


def _patient(**overrides):
    data = {
        "name": "John Doe",
        "address": "12 Harbour Street, Springfield",
        "registrationNumber": "12.34.56.78",
        "birthPlace": "Springfield",
        "birthDay": "1990-05-01",
    }
    data.update(overrides)
    return data


@pytest.fixture
def patient(client, staff_headers):
    response = client.post(f"{PATIENTS_URL}/create", headers=staff_headers, json=_patient())
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_patients_require_login(client):
    assert client.get(PATIENTS_URL).status_code == 401
    assert client.post(f"{PATIENTS_URL}/create", json=_patient()).status_code == 401


def test_create_patient(client, patient):
    assert patient["name"] == "John Doe"
    assert patient["registration_number"] == "12.34.56.78"
    assert patient["full_birth_info"] == "Springfield, 1990-05-01"
    assert patient["id"]


def test_admin_can_manage_patients(client, admin_headers):
    response = client.post(f"{PATIENTS_URL}/create", headers=admin_headers, json=_patient())

    assert response.status_code == 201


def test_duplicate_registration_number(client, staff_headers, patient):
    response = client.post(f"{PATIENTS_URL}/create", headers=staff_headers,
                           json=_patient(name="Jane Doe"))

    assert response.status_code == 400
    assert response.json()["message"] == "Registration number already exists"


@pytest.mark.parametrize("field, value", [
    ("registrationNumber", "12345678"),
    ("name", "R2 D2"),
    ("birthDay", "01/05/1990"),
])
def test_invalid_patient_fields(client, staff_headers, field, value):
    response = client.post(f"{PATIENTS_URL}/create", headers=staff_headers, json=_patient(**{field: value}))

    assert response.status_code == 400
    assert response.json()["message"] == "Validation error"


def test_list_search_and_total(client, staff_headers, patient):
    client.post(f"{PATIENTS_URL}/create", headers=staff_headers,
                json=_patient(name="Alice Smith", registrationNumber="11.11.11.11"))

    everyone = client.get(PATIENTS_URL, headers=staff_headers).json()["data"]
    assert everyone["pagination"]["total"] == 2
    assert [p["name"] for p in everyone["patients"]] == ["Alice Smith", "John Doe"]

    found = client.get(f"{PATIENTS_URL}?search=alice", headers=staff_headers).json()["data"]
    assert [p["name"] for p in found["patients"]] == ["Alice Smith"]

    descending = client.get(f"{PATIENTS_URL}?sortBy=name&sortOrder=desc", headers=staff_headers).json()["data"]
    assert descending["patients"][0]["name"] == "John Doe"

    total = client.get(f"{PATIENTS_URL}/total", headers=staff_headers)
    assert total.json()["data"]["total"] == 2


@pytest.fixture
def three_patients(client, staff_headers, patient):
    for name, number, address in (
        ("Alice Smith", "11.11.11.11", "4 Mill Lane, Riverton"),
        ("Alan Jones", "22.22.22.22", "7 Harbour Street, Springfield"),
    ):
        response = client.post(f"{PATIENTS_URL}/create", headers=staff_headers,
                               json=_patient(name=name, registrationNumber=number, address=address))
        assert response.status_code == 201, response.text


def test_search_by_substring_or_prefix(client, staff_headers, three_patients):
    found = client.get(f"{PATIENTS_URL}/search?q=smi", headers=staff_headers)
    assert found.status_code == 200
    assert [p["name"] for p in found.json()["data"]["patients"]] == ["Alice Smith"]

    prefixed = client.get(f"{PATIENTS_URL}/search?startsWith=al", headers=staff_headers).json()["data"]
    assert [p["name"] for p in prefixed["patients"]] == ["Alan Jones", "Alice Smith"]

    everyone = client.get(f"{PATIENTS_URL}/search", headers=staff_headers).json()["data"]
    assert everyone["pagination"]["total"] == 3


def test_search_by_name_and_address(client, staff_headers, three_patients):
    by_name = client.get(f"{PATIENTS_URL}/search/name?name=doe", headers=staff_headers)
    assert by_name.status_code == 200
    assert by_name.json()["message"] == 'Found 1 patients matching name "doe"'

    by_address = client.get(f"{PATIENTS_URL}/search/address?address=harbour", headers=staff_headers)
    assert by_address.json()["message"] == 'Found 2 patients in address "harbour"'
    assert [p["name"] for p in by_address.json()["data"]["patients"]] == ["Alan Jones", "John Doe"]


@pytest.mark.parametrize("path, message", [
    ("search/name", "Name parameter is required"),
    ("search/address", "Address parameter is required"),
    ("search/alphabet", "Single letter parameter is required"),
    ("search/alphabet?letter=ab", "Single letter parameter is required"),
])
def test_field_searches_require_their_parameter(client, staff_headers, path, message):
    response = client.get(f"{PATIENTS_URL}/{path}", headers=staff_headers)

    assert response.status_code == 400
    assert response.json()["message"] == message


def test_patients_by_initial(client, staff_headers, three_patients):
    response = client.get(f"{PATIENTS_URL}/search/alphabet?letter=a", headers=staff_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == 'Found 2 patients with names starting with "A"'
    assert [p["name"] for p in body["data"]["patients"]] == ["Alan Jones", "Alice Smith"]


def test_search_treats_wildcards_literally(client, staff_headers, three_patients):
    for term in ("%25", "_"):
        response = client.get(f"{PATIENTS_URL}?search={term}", headers=staff_headers)
        assert response.json()["data"]["pagination"]["total"] == 0


def test_page_parameters_are_clamped(client, staff_headers, three_patients):
    response = client.get(f"{PATIENTS_URL}?page=0&limit=500", headers=staff_headers)

    assert response.status_code == 200
    pagination = response.json()["data"]["pagination"]
    assert pagination["current_page"] == 1
    assert pagination["per_page"] == 100
    assert len(response.json()["data"]["patients"]) == 3

    default = client.get(f"{PATIENTS_URL}?limit=0", headers=staff_headers).json()["data"]
    assert default["pagination"]["per_page"] == 10


def test_get_update_delete_patient(client, staff_headers, patient):
    url = f"{PATIENTS_URL}/{patient['id']}"

    assert client.get(url, headers=staff_headers).json()["data"]["name"] == "John Doe"

    updated = client.put(url, headers=staff_headers, json={"address": "99 New Road, Springfield"})
    assert updated.status_code == 200
    assert updated.json()["data"]["address"] == "99 New Road, Springfield"
    assert updated.json()["data"]["name"] == "John Doe"

    assert client.delete(url, headers=staff_headers).status_code == 200
    assert client.get(url, headers=staff_headers).status_code == 404


def test_unknown_patient(client, staff_headers):
    response = client.get(f"{PATIENTS_URL}/missing", headers=staff_headers)

    assert response.status_code == 404
    assert response.json()["message"] == "Patient not found"
