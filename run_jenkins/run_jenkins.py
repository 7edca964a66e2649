#!/usr/bin/env python
"""
Launch a jenkins job, stream its output and wait for it to finish.
"""
import argparse
import json
import os
import re
import signal
import sys
from collections import namedtuple
from contextlib import contextmanager

from . import __version__
from .errors import BuildFailed
from .lifecycle import Deadline
from .lifecycle import POLL_INTERVAL
from .lifecycle import run_build
from .models import JobReference
from .session import Session
from .utils import CONFIG, errlog, log, parse_duration


Settings = namedtuple(
    'Settings',
    'base_url auth job number params timeout interval output launch_only',
)


def parse_kwarg(kwarg):
    """
    Parse a key=value argument from the command line and return it as a
    (key, value) tuple.
    """
    count = kwarg.count('=')
    if count == 0:
        msg = 'Invalid job argument: "{}". Please use key=value format'
        raise ValueError(msg.format(kwarg))

    key, value = kwarg.split('=', 1)
    return key.strip(), value.strip()


def parse_job_parameters(text):
    """
    Parse the job parameters given as a JSON object of strings.
    """
    if not text:
        return {}
    try:
        params = json.loads(text)
    except ValueError as error:
        raise ValueError('Failed to parse job parameters: {}'.format(error))

    if not isinstance(params, dict):
        raise ValueError('Job parameters must be a JSON object')
    invalid = [k for k, v in params.items() if not isinstance(v, str)]
    if invalid:
        raise ValueError(
            'Job parameters must be strings: ' + ', '.join(sorted(invalid))
        )
    return params


def parse_job(job, base_url=''):
    """
    Parse the job given by the user, either as a name like ``folder/job`` or
    as the full url of the job. Returns a (base_url, JobReference) tuple.

    When the job is a url and no base url was given, the base url is the part
    of the job url that comes before its first ``/job/``.
    """
    if not re.search('^https?://', job):
        return base_url, JobReference.from_name(job)

    reference = JobReference.from_url(job)
    if not base_url:
        base_url = job[:job.index('/job/')]
    return base_url, reference


def parse_build_id(value):
    if not value:
        return None
    if not re.search(r'^\d+$', str(value).strip()):
        raise ValueError('Invalid build id: "{}"'.format(value))
    return int(value) or None


def build_parser(environ):
    parser = argparse.ArgumentParser(
        prog='Jenkins runner',
        description='Launch a Jenkins job, stream its output and wait for '
        'it to finish',
    )
    parser.add_argument(
        '--base-url',
        help='Jenkins base url, like https://jenkins.example.com '
        '[$JENKINS_BASE_URL]',
        default=environ.get('JENKINS_BASE_URL', ''),
    )
    parser.add_argument(
        '-u',
        '--user',
        help='Username [$JENKINS_USER]',
        default=environ.get('JENKINS_USER', ''),
    )
    parser.add_argument(
        '-t',
        '--password',
        '--token',
        dest='password',
        help='Password or user token [$JENKINS_PASSWORD]',
        default=environ.get('JENKINS_PASSWORD', ''),
    )
    parser.add_argument(
        '-j',
        '--job-name',
        help='The job to run, like my_folder/my_job, or its full url '
        '[$JENKINS_JOB_NAME]',
        default=environ.get('JENKINS_JOB_NAME', ''),
    )
    parser.add_argument(
        '-b',
        '--build-id',
        help='Wait for this existing build instead of launching a new one '
        '[$JENKINS_JOB_BUILD_ID]',
        default=environ.get('JENKINS_JOB_BUILD_ID', ''),
    )
    parser.add_argument(
        '--job-parameters',
        help='Job parameters as a JSON object, like \'{"key": "value"}\' '
        '[$JENKINS_JOB_PARAMETERS]',
        default=environ.get('JENKINS_JOB_PARAMETERS', ''),
    )
    parser.add_argument(
        '--wait-timeout',
        help='How long to wait, like 90s or 1h30m. Wait forever if not set '
        'or negative, do not wait at all if 0. Pass negative durations with '
        'an equals sign, like --wait-timeout=-1s [$JENKINS_WAIT_TIMEOUT]',
        default=environ.get('JENKINS_WAIT_TIMEOUT', ''),
    )
    parser.add_argument(
        '--wait-polling-interval',
        '--wait-pooling-interval',
        dest='wait_polling_interval',
        help='Time between status checks (default: 0.5s) '
        '[$JENKINS_WAIT_POLLING_INTERVAL]',
        default=environ.get('JENKINS_WAIT_POLLING_INTERVAL')
        or environ.get('JENKINS_WAIT_POOLING_INTERVAL', ''),
    )
    parser.add_argument(
        '-l',
        '--launch-only',
        help='Only launch the build. Exit when it starts running',
        action='store_true',
    )
    parser.add_argument(
        '-s',
        '--silent',
        help='Do not print the console output of the build',
        action='store_true',
    )
    parser.add_argument(
        '-q', '--quiet', help='Do not print user messages', action='store_true'
    )
    parser.add_argument(
        '--debug', help='Print debug output', action='store_true'
    )
    parser.add_argument(
        '-k',
        '--insecure',
        help='Do not verify SSL certificates',
        action='store_true',
    )
    parser.add_argument(
        '--version',
        action='version',
        version='%(prog)s v{}'.format(__version__),
    )
    parser.add_argument(
        'params',
        help='(Optional) A list of parameters in the form key=value. They '
        'take precedence over --job-parameters',
        nargs='*',
    )
    return parser


def parse_args(argv=None, environ=None):
    """
    Parse command line arguments, falling back to environment variables, and
    return the resulting Settings.

    Raises ValueError listing every required value that is missing.
    """
    if environ is None:
        environ = os.environ
    args = build_parser(environ).parse_args(argv)

    CONFIG['quiet'] = args.quiet
    CONFIG['debug'] = args.debug
    CONFIG['verify_ssl'] = not args.insecure

    errors = []
    if not args.user:
        errors.append('user is empty')
    if not args.password:
        errors.append('password is empty')
    if not args.job_name:
        errors.append('job-name is empty')
    elif not args.base_url and not re.search('^https?://', args.job_name):
        errors.append('base-url is empty')
    if errors:
        raise ValueError('Invalid configuration: ' + ', '.join(errors))

    base_url, job = parse_job(args.job_name, args.base_url)
    params = parse_job_parameters(args.job_parameters)
    params.update(map(parse_kwarg, args.params))

    timeout = None
    if args.wait_timeout:
        timeout = parse_duration(args.wait_timeout)
        if timeout < 0:
            timeout = None

    interval = POLL_INTERVAL
    if args.wait_polling_interval:
        interval = parse_duration(args.wait_polling_interval)
        if interval <= 0:
            raise ValueError('The polling interval must be positive')

    return Settings(
        base_url=base_url,
        auth=(args.user, args.password),
        job=job,
        number=parse_build_id(args.build_id),
        params=params,
        timeout=timeout,
        interval=interval,
        output=None if args.silent else sys.stdout,
        launch_only=args.launch_only,
    )


@contextmanager
def cancel_on_signals(deadline, signals=(signal.SIGINT, signal.SIGTERM)):
    """
    Turn the first SIGINT or SIGTERM into a cancellation of ``deadline``.

    Waiting loops stop at their next iteration. A second signal gets the
    default behaviour.
    """
    originals = {}

    def handler(signum, frame):
        log('\nInterrupted, stopping after the current request')
        deadline.cancel()
        for sig, original in originals.items():
            signal.signal(sig, original)

    for sig in signals:
        originals[sig] = signal.signal(sig, handler)
    try:
        yield deadline
    finally:
        for sig, original in originals.items():
            signal.signal(sig, original)


def main(argv=None):
    """
    Launch a Jenkins build, or attach to a running one, and wait for it to
    finish.
    """
    settings = parse_args(argv)
    deadline = Deadline(settings.timeout)
    with cancel_on_signals(deadline):
        session = Session(settings.base_url, settings.auth)
        try:
            report = run_build(
                session,
                settings.job,
                params=settings.params,
                number=settings.number,
                deadline=deadline,
                interval=settings.interval,
                output=settings.output,
                launch_only=settings.launch_only,
            )
        except BuildFailed as error:
            errlog('Err:', error)
            return 1

    if settings.launch_only:
        print(report.url)
    else:
        print(
            'Job {} successfully completed, URL: {}'.format(
                report.job_name, report.url
            )
        )
    return 0


def cli():
    try:
        sys.exit(main())
    except Exception as e:
        if CONFIG['debug']:
            raise
        errlog('Err:', e)
        sys.exit(1)


if __name__ == '__main__':
    cli()
