"""
Exceptions raised while launching and following a Jenkins build.
"""


class JenkinsError(RuntimeError):
    """
    The Jenkins API answered with an error status.
    """

    def __init__(self, msg, status=None, url=None):
        super(JenkinsError, self).__init__(msg)
        self.status = status
        self.url = url


class NotFound(JenkinsError):
    """
    The requested resource does not exist on the server (yet).
    """


class BuildCancelled(JenkinsError):
    pass


class WaitTimeout(RuntimeError):
    """
    The deadline elapsed before the build reached a final state.

    ``last_error`` holds the last transient error seen while waiting, if any.
    """

    def __init__(self, msg, last_error=None):
        if last_error is not None:
            msg = '{}, last error: {}'.format(msg, last_error)
        super(WaitTimeout, self).__init__(msg)
        self.last_error = last_error


class Cancelled(RuntimeError):
    pass


class BuildFailed(RuntimeError):
    def __init__(self, job_name, url, result=None):
        msg = 'Job {} failed, URL: {}'.format(job_name, url)
        if result:
            msg = 'Job {} ended in {}, URL: {}'.format(job_name, result, url)
        super(BuildFailed, self).__init__(msg)
        self.job_name = job_name
        self.url = url
        self.result = result
