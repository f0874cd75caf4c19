import threading

import pytest

from merrbio.application.services.auth_service import Registration
from merrbio.domain.exceptions import (
    EmailAlreadyExistsError,
    InvalidArgumentError,
    InvalidCredentialsError,
    PhoneAlreadyExistsError,
    TokenRefreshError,
)
from merrbio.domain.models import Identity, Role


def _registration(**overrides):
    values = dict(
        email="ana@farmmail.org",
        password="secret123",
        first_name="Ana",
        last_name="Hoxha",
        phone_number="+355691234567",
    )
    values.update(overrides)
    return Registration(**values)


def test_register_customer_implies_login(auth_service, token_service, persistence):
    pair = auth_service.register_customer(_registration(email="Ana@FarmMail.org"))

    user = persistence.get_user_by_email("ana@farmmail.org")
    assert user.role is Role.CUSTOMER
    assert token_service.extract_identity(pair.access_token).subject == "ana@farmmail.org"
    assert token_service.find_by_token(pair.refresh_token).user_id == user.id
    info = persistence.get_user_info(user.id)
    assert info.full_name == "Ana Hoxha"
    assert persistence.get_farmer_by_user_id(user.id) is None


def test_register_farmer_creates_unverified_farm(auth_service, persistence):
    auth_service.register_farmer(_registration(farm_name="Sunny Acres", farm_location="Korçë", bio="Apples"))

    user = persistence.get_user_by_email("ana@farmmail.org")
    farmer = persistence.get_farmer_by_user_id(user.id)
    assert user.role is Role.FARMER
    assert farmer.farm_name == "Sunny Acres"
    assert farmer.farm_location == "Korçë"
    assert farmer.is_verified is False


def test_register_farmer_requires_farm_name(auth_service):
    with pytest.raises(InvalidArgumentError):
        auth_service.register_farmer(_registration(farm_name="  "))


def test_duplicate_email_and_phone_are_conflicts(auth_service):
    auth_service.register_customer(_registration())

    with pytest.raises(EmailAlreadyExistsError):
        auth_service.register_customer(_registration(phone_number="+355690000000"))
    with pytest.raises(PhoneAlreadyExistsError):
        auth_service.register_farmer(_registration(email="other@farmmail.org", farm_name="Farm"))


def test_short_password_is_rejected(auth_service):
    with pytest.raises(InvalidArgumentError):
        auth_service.register_customer(_registration(password="abc"))


def test_authenticate(auth_service, token_service):
    auth_service.register_customer(_registration())

    pair = auth_service.authenticate(" ANA@farmmail.org ", "secret123")

    assert token_service.extract_identity(pair.access_token).role is Role.CUSTOMER
    with pytest.raises(InvalidCredentialsError):
        auth_service.authenticate("ana@farmmail.org", "wrong-password")
    with pytest.raises(InvalidCredentialsError):
        auth_service.authenticate("ghost@farmmail.org", "secret123")


def test_change_password_signs_out_everywhere(auth_service, token_service, persistence):
    pair = auth_service.register_customer(_registration())
    identity = Identity.of(persistence.get_user_by_email("ana@farmmail.org"))

    auth_service.change_password(identity, "secret123", "new-secret")

    with pytest.raises(TokenRefreshError):
        token_service.refresh_token(pair.refresh_token)
    with pytest.raises(InvalidCredentialsError):
        auth_service.authenticate("ana@farmmail.org", "secret123")
    assert auth_service.authenticate("ana@farmmail.org", "new-secret").access_token


def test_change_password_validates_input(auth_service, persistence):
    auth_service.register_customer(_registration())
    identity = Identity.of(persistence.get_user_by_email("ana@farmmail.org"))

    with pytest.raises(InvalidArgumentError):
        auth_service.change_password(identity, "not-my-password", "new-secret")
    with pytest.raises(InvalidArgumentError):
        auth_service.change_password(identity, "secret123", "secret123")


def test_default_admin_is_seeded_once(auth_service, persistence):
    first = auth_service.ensure_default_admin("Admin@FarmMail.org", "admin-pass")
    second = auth_service.ensure_default_admin("admin@farmmail.org", "admin-pass")

    assert first.id == second.id
    assert first.role is Role.ADMIN
    assert auth_service.ensure_default_admin(None, None) is None


def test_concurrent_duplicate_registration_conflicts(auth_service, persistence):
    barrier = threading.Barrier(2)
    outcomes = []

    def register(phone_number):
        barrier.wait()
        try:
            auth_service.register_customer(_registration(email="race@farmmail.org", phone_number=phone_number))
            outcomes.append("ok")
        except EmailAlreadyExistsError:
            outcomes.append("conflict")

    threads = [
        threading.Thread(target=register, args=("+355690000001",)),
        threading.Thread(target=register, args=("+355690000002",)),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["conflict", "ok"]
    assert persistence.get_user_by_email("race@farmmail.org") is not None


def test_insert_past_stale_checks_maps_to_conflicts(auth_service, persistence, password_hasher):
    auth_service.register_customer(_registration())
    account = dict(
        password_hash=password_hasher.hash("secret123"),
        role=Role.CUSTOMER,
        first_name="Ana",
        last_name="Hoxha",
    )

    with pytest.raises(EmailAlreadyExistsError):
        persistence.create_account("ana@farmmail.org", phone_number="+355690000099", **account)
    with pytest.raises(PhoneAlreadyExistsError):
        persistence.create_account("other@farmmail.org", phone_number="+355691234567", **account)
    assert persistence.get_user_by_email("other@farmmail.org") is None
