from backend.settings import Settings


def make_settings(**overrides) -> Settings:
    values = {
        "default_city": "Delhi,India",
        "use_mock_ai": False,
        "openai_api_key": None,
        "weather_api_key": None,
        "github_token": None,
        "newsapi_key": None,
        "request_timeout": 5.0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class DummyResp:
    def __init__(self, data=None, status_code=200, text=""):
        self._data = data
        self.status_code = status_code
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if isinstance(self._data, Exception):
            raise self._data
        return self._data


class DummyHttp:
    """Records calls and replays a fixed response."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def _call(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return self.response

    def get(self, url, **kwargs):
        return self._call("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._call("POST", url, **kwargs)
