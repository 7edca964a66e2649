__version__ = '1.0.0'

from .errors import BuildCancelled  # noqa:F401,E402
from .errors import BuildFailed  # noqa:F401,E402
from .errors import Cancelled  # noqa:F401,E402
from .errors import JenkinsError  # noqa:F401,E402
from .errors import NotFound  # noqa:F401,E402
from .errors import WaitTimeout  # noqa:F401,E402
from .lifecycle import Deadline  # noqa:F401,E402
from .lifecycle import attach_build  # noqa:F401,E402
from .lifecycle import read_console  # noqa:F401,E402
from .lifecycle import refresh_state  # noqa:F401,E402
from .lifecycle import resolve_queue_item  # noqa:F401,E402
from .lifecycle import retry  # noqa:F401,E402
from .lifecycle import run_build  # noqa:F401,E402
from .lifecycle import trigger_build  # noqa:F401,E402
from .lifecycle import wait_build  # noqa:F401,E402
from .models import JobReference  # noqa:F401,E402
from .session import Session  # noqa:F401,E402
from .run_jenkins import main  # noqa:F401,E402
from .run_jenkins import parse_args  # noqa:F401,E402
