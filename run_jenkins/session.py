"""
Thin client for the parts of the Jenkins REST API needed to launch a build
and follow it.
"""
import re

import requests
import urllib3

from . import __version__
from .errors import JenkinsError, NotFound
from .models import BuildHandle, BuildStatus, ConsoleChunk, Job, QueueItem
from .utils import CONFIG


CRUMB_PATH = (
    '/crumbIssuer/api/xml?xpath=concat(//crumbRequestField,":",//crumb)'
)
PARAMETERS_PROPERTY = 'hudson.model.ParametersDefinitionProperty'


def get_param_definitions(job_info):
    """
    Get the list of allowed parameters of a job and their respective choices
    from its json description.

    Free text parameters map to None.
    """
    props = job_info.get('property', [])
    defs = next(
        (
            p['parameterDefinitions']
            for p in props
            if p.get('_class', '') == PARAMETERS_PROPERTY
        ),
        [],
    )
    return {d['name']: d.get('choices', None) for d in defs}


def validate_params(definitions, supplied):
    """
    Check the dict of supplied params against the list of allowed choices.
    """
    if not supplied:
        return True

    if not definitions:
        raise ValueError('This job does not take any parameters')

    nonexistent = [p for p in supplied if p not in definitions]
    if nonexistent:
        raise ValueError(
            'These parameters do not exist: ' + ', '.join(nonexistent)
        )

    for key, value in supplied.items():
        choices = definitions[key]
        if choices is None:
            continue
        if str(value) not in choices:
            msg = "Invalid choice '{}' for parameter '{}'."
            msg += "\n\nValid choices are {}"
            raise ValueError(msg.format(value, key, choices))
    return True


class Session:
    def __init__(self, base, auth=None, timeout=30):
        self.base = base.rstrip('/')
        self.auth = auth
        self.timeout = timeout
        self.http = requests.Session()
        self.http.headers['User-Agent'] = 'run_jenkins/' + __version__
        self.http.auth = tuple(auth) if auth else None
        self.http.verify = CONFIG['verify_ssl']
        if not self.http.verify:
            warning = urllib3.exceptions.InsecureRequestWarning
            urllib3.disable_warnings(warning)

        self._get_crumb()

    def _get_crumb(self):
        """
        Get the necessary crumb header if our Jenkins instance is CSRF
        protected, and automatically add it to this session's default headers.
        """
        try:
            resp = self.get_url(self.base + CRUMB_PATH)
        except NotFound:
            return
        key, value = resp.text.split(':', 1)
        self.http.headers[key] = value

    def get_url(self, url, data=None):
        """
        Send a request to Jenkins and return the response.

        A POST with ``data`` as form fields is sent when ``data`` is not None,
        otherwise a GET. Error statuses are raised as NotFound or JenkinsError.
        """
        method = 'GET' if data is None else 'POST'
        response = self.http.request(
            method,
            url,
            data=data,
            timeout=self.timeout,
            allow_redirects=data is None,
        )
        if response.status_code >= 400:
            msg = '{} {} returned {} {}'.format(
                method, url, response.status_code, response.reason
            )
            error = NotFound if response.status_code == 404 else JenkinsError
            raise error(msg.strip(), status=response.status_code, url=url)
        return response

    def get_job(self, reference):
        url = self.base + reference.url_path + '/'
        info = self.get_url(url + 'api/json').json()
        return Job(reference, url, get_param_definitions(info))

    def get_build(self, job, number):
        url = '{}{}/'.format(job.url, number)
        info = self.get_url(url + 'api/json?tree=number').json()
        return BuildHandle(job.reference, info.get('number', number), url)

    def start_build(self, job, params=None):
        """
        Submit a build of ``job`` and return the id of its queue item.

        Jenkins answers without a new queue item when an identical request is
        already waiting in the queue. The id returned is 0 in that case.
        """
        validate_params(job.parameters, params)

        url = job.url + ('buildWithParameters' if job.parameters else 'build')
        url += '?delay=0'
        response = self.get_url(url, data=params or {})

        location = response.headers.get('Location', '')
        match = re.search(r'/queue/item/(\d+)', location)
        if not match:
            return 0
        return int(match.group(1))

    def get_queue_item(self, queue_id):
        url = '{}/queue/item/{}/api/json'.format(self.base, queue_id)
        info = self.get_url(url).json()
        executable = info.get('executable') or {}
        task = info.get('task') or {}
        return QueueItem(
            queue_id,
            executable.get('number') or 0,
            task.get('url', ''),
            info.get('cancelled', False),
        )

    def poll_build(self, build):
        url = build.url + 'api/json?tree=building,result,url'
        info = self.get_url(url).json()
        return BuildStatus(
            info.get('building', False), info.get('result'), info.get('url')
        )

    def get_console_output(self, build, offset=0):
        """
        Get the console output of a build starting at byte ``offset``.
        """
        url = '{}logText/progressiveText?start={}'.format(build.url, offset)
        response = self.get_url(url)
        size = response.headers.get('X-Text-Size')
        more = response.headers.get('X-More-Data', '').lower() == 'true'
        if size:
            next_offset = int(size)
        else:
            next_offset = offset + len(response.content)
        return ConsoleChunk(response.text, next_offset, more)
