"""
Output helpers and runtime configuration shared by the whole package.
"""
import re
import sys


CONFIG = {
    'quiet': False,
    'debug': False,
    'verify_ssl': True,
}

_UNITS = {
    'ns': 1e-9,
    'us': 1e-6,
    'µs': 1e-6,
    'μs': 1e-6,
    'ms': 0.001,
    's': 1,
    'm': 60,
    'h': 3600,
}
_NUMBER = r'(\d+(?:\.\d*)?|\.\d+)'
_PART = _NUMBER + r'\s*(ns|us|µs|μs|ms|s|m|h)'


def log(*args, **kwargs):
    if CONFIG['quiet']:
        return
    kwargs['file'] = sys.stderr
    print(*args, **kwargs)


def errlog(*args, **kwargs):
    kwargs['file'] = sys.stderr
    print(*args, **kwargs)


def debuglog(*args, **kwargs):
    if CONFIG['debug']:
        errlog(*args, **kwargs)


def parse_duration(value):
    """
    Parse a duration and return it in seconds.

    Plain numbers are taken as seconds. Otherwise the value is a sequence of
    numbers with a unit each (ns, us, ms, s, m, h), like '1500ms', '.5s' or
    '1h30m', optionally preceded by a sign.
    """
    value = str(value).strip()
    text = value
    sign = 1
    if text.startswith(('-', '+')):
        sign = -1 if text[0] == '-' else 1
        text = text[1:]

    if re.search('^' + _NUMBER + '$', text):
        return sign * float(text)
    if not re.search('^(?:' + _PART + ')+$', text):
        raise ValueError('Invalid duration: "{}"'.format(value))
    parts = re.findall(_PART, text)
    return sign * sum(float(number) * _UNITS[unit] for number, unit in parts)


def format_seconds(seconds):
    """
    Format seconds as mm:ss, or h:mm:ss for an hour or more.
    """
    seconds = int(seconds)
    if seconds >= 3600:
        formatted = '%d:%02d:%02d' % (
            seconds / 3600,
            (seconds % 3600) / 60,
            (seconds % 3600) % 60,
        )
    else:
        formatted = '%02d:%02d' % (seconds / 60, seconds % 60)

    return formatted
