import json

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from run_jenkins import lifecycle
from run_jenkins import utils
from run_jenkins.models import BuildHandle, Job, JobReference
from run_jenkins.session import Session

g_base = 'http://example.com'
g_url = g_base + '/job/thing/job/other/job/master'
g_job = JobReference(('thing', 'other', 'master'))
g_auth = ('username', 'pwd')
g_params = ['--base-url', g_base, '-u', g_auth[0], '-t', g_auth[1], '-j',
            g_job.name]


class FakeResponse:
    """
    Mock response class that works more or less like a requests Response.
    """

    def __init__(self, text='', headers=None, status_code=200, reason=''):
        if isinstance(text, bytes):
            self.content = text
            text = text.decode('utf-8', errors='ignore')
        else:
            self.content = text.encode('utf-8')
        self.text = text
        self.headers = CaseInsensitiveDict(headers or {})
        self.status_code = status_code
        self.reason = reason

    def json(self):
        return json.loads(self.text)


class FakeClock:
    """
    Virtual replacement for the ``time`` module. Sleeping just moves the
    clock forward.
    """

    def __init__(self):
        self.now = 1000.0
        self.sleeps = []

    def monotonic(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class FakeJenkins:
    """
    Scripted replacement for Session.

    Every keyword argument is the list of results that the method with that
    name will produce, one per call. Exceptions are raised instead of
    returned, and the last result repeats forever. Unscripted job and build
    lookups always succeed.
    """

    def __init__(self, **script):
        self.script = {name: list(results) for name, results in script.items()}
        self.calls = []

    def _next(self, name, *args):
        self.calls.append((name,) + args)
        results = self.script[name]
        result = results.pop(0) if len(results) > 1 else results[0]
        if isinstance(result, Exception):
            raise result
        return result

    def called(self, name):
        return [call[1:] for call in self.calls if call[0] == name]

    def get_job(self, reference):
        if 'get_job' in self.script:
            return self._next('get_job', reference)
        self.calls.append(('get_job', reference))
        return Job(reference, g_base + reference.url_path + '/', {})

    def get_build(self, job, number):
        if 'get_build' in self.script:
            return self._next('get_build', job, number)
        self.calls.append(('get_build', job, number))
        url = '{}{}/'.format(job.url, number)
        return BuildHandle(job.reference, number, url)

    def start_build(self, job, params):
        return self._next('start_build', job, params)

    def get_queue_item(self, queue_id):
        return self._next('get_queue_item', queue_id)

    def poll_build(self, build):
        return self._next('poll_build', build)

    def get_console_output(self, build, offset):
        return self._next('get_console_output', build, offset)


@pytest.fixture(autouse=True)
def config():
    """
    Fixture to restore the original CONFIG in the utils module.
    """
    backup = utils.CONFIG.copy()
    try:
        yield
    finally:
        utils.CONFIG.clear()
        utils.CONFIG.update(backup)


@pytest.fixture
def clock(monkeypatch):
    """
    Replace the clock used by the lifecycle module with a virtual one.
    """
    fake = FakeClock()
    monkeypatch.setattr(lifecycle, 'time', fake)
    return fake


@pytest.fixture
def mock_url(monkeypatch):
    """
    Returns a function that allows you to return a canned FakeResponse when a
    specific url is requested. Every request sent is recorded in its `sent`
    attribute.
    """
    sent = []

    def ret(mock_pairs):
        if not isinstance(mock_pairs, list):
            mock_pairs = [mock_pairs]
        mock_pairs = {
            (p.pop('url'), p.pop('method', 'GET').upper()): p
            for p in mock_pairs
        }

        def mock(self, method, url, **kwargs):
            sent.append(dict(kwargs, method=method, url=url, session=self))
            resp = mock_pairs.get((url, method.upper()), None)
            if resp is None:
                raise RuntimeError(
                    "No mock response set for url '{}'".format(url)
                )
            return FakeResponse(**resp)

        monkeypatch.setattr(requests.Session, 'request', mock)

    ret.sent = sent
    return ret


@pytest.fixture
def session(monkeypatch):
    monkeypatch.setattr(Session, '_get_crumb', lambda self: None)
    return Session(g_base, g_auth)
