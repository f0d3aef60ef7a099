import pytest

from healthmate.forms import FormStore, load_form_definition


VALID_VALUES = {
    "login": {"email": "a@b.com", "password": "secret1"},
    "register": {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "password": "Abc12345",
        "confirmPassword": "Abc12345",
    },
    "contact": {
        "name": "Ada",
        "email": "ada@example.com",
        "phone": "",
        "subject": "Appointment",
        "message": "I would like to book a checkup.",
    },
}


def fill(store: FormStore, values: dict) -> FormStore:
    for field, value in values.items():
        store.set_value(field, value)
    return store


@pytest.fixture
def login_definition():
    return load_form_definition("login")


@pytest.fixture
def register_definition():
    return load_form_definition("register")


@pytest.fixture
def contact_definition():
    return load_form_definition("contact")


@pytest.fixture
def login_schema(login_definition):
    return login_definition.validation


@pytest.fixture
def register_schema(register_definition):
    return register_definition.validation


@pytest.fixture
def contact_schema(contact_definition):
    return contact_definition.validation


@pytest.fixture
def register_store(register_definition):
    return FormStore(register_definition.validation, register_definition.initial_values)


@pytest.fixture
def contact_store(contact_definition):
    return FormStore(contact_definition.validation, contact_definition.initial_values)


@pytest.fixture
def filled_contact_store(contact_store):
    return fill(contact_store, VALID_VALUES["contact"])


@pytest.fixture
def filled_login_store(login_definition):
    store = FormStore(login_definition.validation, login_definition.initial_values)
    return fill(store, VALID_VALUES["login"])
