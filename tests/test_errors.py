from fakes import auth_error, server_error

from medcrm.errors import AuthExpiredError, RemoteError, ValidationError, classify, is_auth_failure


def test_postgrest_jwt_error_is_auth_failure():
    err = classify(auth_error())
    assert isinstance(err, AuthExpiredError)
    assert err.code == "PGRST301"


def test_constraint_violation_is_plain_remote_error():
    err = classify(server_error())
    assert type(err) is RemoteError
    assert err.code == "23505"
    assert "duplicate key" in str(err)


def test_auth_text_without_code_is_auth_failure():
    assert is_auth_failure(Exception("Invalid Refresh Token: Refresh Token Not Found"))
    assert is_auth_failure(Exception("401 Unauthorized"))
    assert not is_auth_failure(Exception("connection reset by peer"))


def test_http_status_401_is_auth_failure():
    class HTTPError(Exception):
        status = 401
    assert is_auth_failure(HTTPError("request failed"))


def test_medcrm_errors_pass_through():
    err = ValidationError("name is required")
    assert classify(err) is err
