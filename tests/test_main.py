from app.main import app, read_root


def test_root_returns_welcome_message():
    assert read_root() == {"message": "Welcome to the Farsi Practice API!"}


def test_practice_routes_are_mounted():
    paths = app.openapi()["paths"]

    assert "get" in paths["/api/v2/practice/words"]
    assert "post" in paths["/api/v2/practice/review"]
    assert "post" in paths["/api/v2/practice/guest/words"]
    assert "post" in paths["/api/v2/practice/guest/review"]
    assert "get" in paths["/api/v2/srs/summary"]
    assert "get" in paths["/api/v2/user/stats"]
