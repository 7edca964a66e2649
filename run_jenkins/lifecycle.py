"""
Launch a Jenkins build, or attach to a running one, and follow it until it
finishes.

Everything here talks to Jenkins through a client object with the same
methods as ``run_jenkins.session.Session``. All waiting is done by polling
on a fixed interval, and every loop checks its ``Deadline`` at the top of
each iteration.
"""
import time

import requests

from .errors import BuildCancelled
from .errors import BuildFailed
from .errors import Cancelled
from .errors import JenkinsError
from .errors import NotFound
from .errors import WaitTimeout
from .models import BuildReport
from .models import BuildSnapshot
from .models import JobReference
from .models import OutputCursor
from .utils import debuglog, errlog, format_seconds, log


RETRIES = 5
RETRY_DELAY = 0.1
POLL_INTERVAL = 0.5
# Pause before resubmitting a build request that Jenkins merged into an
# item already in the queue
COLLAPSE_PAUSE = 1.0
REMOTE_ERRORS = (JenkinsError, requests.RequestException)


class Deadline:
    """
    Shared time limit for launching and waiting on a build.

    ``timeout`` is in seconds. None or a negative number means wait forever,
    and 0 means the deadline is already over. A deadline can also be
    cancelled, which every waiting loop will notice on its next iteration.
    """

    def __init__(self, timeout=None):
        if timeout is not None and timeout < 0:
            timeout = None
        self.timeout = timeout
        self.start = time.monotonic()
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    @property
    def expired(self):
        if self.timeout is None:
            return False
        return time.monotonic() - self.start >= self.timeout

    def check(self, doing, last_error=None):
        """
        Raise Cancelled or WaitTimeout if we should stop ``doing`` whatever
        we are doing.
        """
        if self.cancelled:
            raise Cancelled('Cancelled while ' + doing)
        if self.expired:
            raise WaitTimeout('Timeout reached while ' + doing, last_error)


def retry(func, retries=RETRIES, delay=RETRY_DELAY, errors=(Exception,),
          message=None):
    """
    Call ``func`` and return its result, trying again up to ``retries`` more
    times if it raises one of ``errors``.

    Every failure is reported to stderr. When the last attempt fails too, its
    exception is raised as is.
    """
    for attempt in range(retries + 1):
        try:
            return func()
        except errors as error:
            if message:
                errlog('{}: {}'.format(message, error))
            else:
                errlog(error)
            if attempt >= retries:
                raise
            time.sleep(delay)


def read_console(client, build, cursor, output, retries=RETRIES,
                 delay=RETRY_DELAY):
    """
    Write the console output of ``build`` produced since ``cursor`` to
    ``output`` and move the cursor forward.

    Jenkins keeps announcing more data for as long as the build runs, so we
    also stop as soon as a request brings nothing new. The next call picks up
    from there.
    """
    cursor.has_more = True
    while cursor.has_more:
        chunk = retry(
            lambda: client.get_console_output(build, cursor.offset),
            retries,
            delay,
            REMOTE_ERRORS,
            'Failed to get console output',
        )
        if chunk.text:
            output.write(chunk.text)
            output.flush()
        previous = cursor.offset
        cursor.advance(chunk)
        if cursor.offset == previous:
            break
    return cursor


def refresh_state(client, build, snapshot, retries=RETRIES,
                  delay=RETRY_DELAY):
    status = retry(
        lambda: client.poll_build(build),
        retries,
        delay,
        REMOTE_ERRORS,
        'Failed to read build state',
    )
    snapshot.update(status)
    return snapshot


def resolve_queue_item(client, queue_id, deadline, interval=POLL_INTERVAL):
    """
    Wait until a queue item starts building and return its BuildHandle.

    Jenkins creates queue items, builds and their records asynchronously, so
    any lookup may fail with a 404 for a little while. Those are retried on
    the next tick. Any other error is raised immediately.
    """
    if not queue_id:
        raise ValueError('Queue item 0 does not identify any build request')

    doing = 'waiting for queue item {} to start'.format(queue_id)
    last_error = None
    while True:
        time.sleep(interval)
        deadline.check(doing, last_error)

        try:
            item = client.get_queue_item(queue_id)
        except NotFound as error:
            debuglog('Queue item {} not found yet'.format(queue_id))
            last_error = error
            continue
        except REMOTE_ERRORS as error:
            errlog('Failed to get queue item {}: {}'.format(queue_id, error))
            raise

        if item.cancelled:
            raise BuildCancelled('Build was cancelled')
        if not item.number or not item.task_url:
            continue

        try:
            job = client.get_job(JobReference.from_url(item.task_url))
            return client.get_build(job, item.number)
        except NotFound as error:
            debuglog('Build #{} not found yet: {}'.format(item.number, error))
            last_error = error
        except REMOTE_ERRORS as error:
            errlog('Failed to get build #{}: {}'.format(item.number, error))
            raise


def trigger_build(client, reference, params=None, deadline=None,
                  interval=POLL_INTERVAL):
    """
    Launch a build of ``reference`` and wait until it leaves the queue.
    """
    deadline = deadline or Deadline()
    try:
        job = client.get_job(reference)
    except REMOTE_ERRORS as error:
        errlog('Failed to get job {}: {}'.format(reference, error))
        raise

    while True:
        deadline.check('waiting for {} to be queued'.format(reference))

        log('Sending build request')
        try:
            queue_id = client.start_build(job, params or {})
        except REMOTE_ERRORS as error:
            errlog('Failed to launch job {}: {}'.format(reference, error))
            raise
        if not queue_id:
            log('Build request was merged with one already in the queue')
            time.sleep(COLLAPSE_PAUSE)
            continue

        log(
            'Job {} is queued with id {}, waiting for an executor to pick it '
            'up'.format(reference, queue_id)
        )
        build = resolve_queue_item(client, queue_id, deadline, interval)
        msg = 'Job {} is running with build id {}'
        log(msg.format(reference, build.number))
        return build


def attach_build(client, reference, number):
    """
    Find an existing build of ``reference``.
    """
    try:
        job = client.get_job(reference)
        build = client.get_build(job, number)
    except REMOTE_ERRORS as error:
        msg = 'Failed to get build #{} of {}: {}'
        errlog(msg.format(number, reference, error))
        raise
    log('Job {} with build id {} is found'.format(reference, build.number))
    return build


def wait_build(client, build, deadline=None, interval=POLL_INTERVAL,
               output=None, retries=RETRIES, delay=RETRY_DELAY):
    """
    Wait until ``build`` finishes and return its final BuildSnapshot.

    If ``output`` is given, the console log of the build is written to it as
    it grows.
    """
    deadline = deadline or Deadline()
    snapshot = BuildSnapshot(build.url)
    cursor = OutputCursor()
    started = time.monotonic()
    while snapshot.running:
        time.sleep(interval)
        deadline.check('waiting for build #{} to finish'.format(build.number))
        if output is not None:
            read_console(client, build, cursor, output, retries, delay)
        refresh_state(client, build, snapshot, retries, delay)

    # whatever was logged between the last read and the end of the build
    if output is not None:
        read_console(client, build, cursor, output, retries, delay)

    elapsed = format_seconds(time.monotonic() - started)
    msg = 'Build #{} ended in {} ({})'
    log(msg.format(build.number, snapshot.result, elapsed))
    return snapshot


def run_build(client, reference, params=None, number=None, deadline=None,
              interval=POLL_INTERVAL, output=None, launch_only=False):
    """
    Launch a build of ``reference``, or attach to build ``number`` if given,
    and wait for it to finish.

    Returns a BuildReport when the build succeeds, and raises BuildFailed
    when it doesn't. With ``launch_only`` the report is returned as soon as
    the build has started, and its result is None.
    """
    deadline = deadline or Deadline()
    if number:
        build = attach_build(client, reference, number)
    else:
        build = trigger_build(client, reference, params, deadline, interval)

    if launch_only:
        return BuildReport(reference.name, build.number, build.url, None)

    snapshot = wait_build(client, build, deadline, interval, output)
    url = snapshot.url or build.url
    if snapshot.succeeded:
        return BuildReport(reference.name, build.number, url, snapshot.result)
    raise BuildFailed(reference.name, url, snapshot.result)
