"""
Value types describing jobs, queue items and builds.
"""
import re
from collections import namedtuple
from urllib.parse import quote, unquote, urlsplit


class JobReference(namedtuple('JobReference', 'path')):
    """
    Hierarchical name of a job: a tuple of folder names followed by the name
    of the job itself.
    """
    __slots__ = ()

    @classmethod
    def from_name(cls, name):
        """
        Parse a slash separated job name, like ``folder/subfolder/job``.
        """
        path = tuple(name.strip().strip('/').split('/'))
        if not all(path):
            raise ValueError('Invalid job name: "{}"'.format(name))
        return cls(path)

    @classmethod
    def from_url(cls, url):
        """
        Parse a job url as returned by the server, where every path segment
        is preceded by a ``/job/`` marker.
        """
        path = urlsplit(url).path.rstrip('/')
        action = re.search('^(.*)/build(WithParameters)?$', path)
        if action:
            path = action.group(1)
        if not re.search(r'(/job/[^/]+)+$', path):
            raise ValueError('Invalid job URL: "{}"'.format(url))

        first = path.index('/job/') + len('/job/')
        segments = path[first:].split('/job/')
        if not all(segments) or any('/' in s for s in segments):
            raise ValueError('Invalid job URL: "{}"'.format(url))
        return cls(tuple(unquote(s) for s in segments))

    @property
    def name(self):
        return '/'.join(self.path)

    @property
    def url_path(self):
        return ''.join('/job/' + quote(s, safe='') for s in self.path)

    def __str__(self):
        return self.name


Job = namedtuple('Job', 'reference url parameters')
BuildHandle = namedtuple('BuildHandle', 'job number url')
QueueItem = namedtuple('QueueItem', 'id number task_url cancelled')
BuildStatus = namedtuple('BuildStatus', 'running result url')
ConsoleChunk = namedtuple('ConsoleChunk', 'text offset has_more')
BuildReport = namedtuple('BuildReport', 'job_name number url result')


class BuildSnapshot:
    """
    Latest known state of a build.

    ``result`` is only meaningful once the build has stopped running, so it
    reads as None while ``running`` is True.
    """

    def __init__(self, url=None):
        self.running = True
        self.url = url
        self._result = None

    @property
    def result(self):
        if self.running:
            return None
        return self._result

    @property
    def succeeded(self):
        return self.result == 'SUCCESS'

    def update(self, status):
        self.running = status.running
        self._result = status.result
        if status.url:
            self.url = status.url

    def __repr__(self):
        return 'BuildSnapshot(running={!r}, result={!r}, url={!r})'.format(
            self.running, self.result, self.url
        )


class OutputCursor:
    """
    Position in the console log of a build. It never moves backwards.
    """

    def __init__(self, offset=0):
        self.offset = offset
        self.has_more = True

    def advance(self, chunk):
        self.offset = max(self.offset, chunk.offset)
        self.has_more = chunk.has_more

    def __repr__(self):
        return 'OutputCursor(offset={!r}, has_more={!r})'.format(
            self.offset, self.has_more
        )
