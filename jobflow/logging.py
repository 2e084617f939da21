import logging
import os
import sys

DEBUG_LOG_FILE_NAME = "jobflow-debug.log"


def getLogger(name):
    return logging.getLogger(name)


def setup(logDir, debugLogFileName, debug=False):
    """
    Configure root logging.

    debug=True logs DEBUG to <logDir>/<debugLogFileName>, a string value
    is used as the log file path instead. Otherwise only errors go to
    stderr.
    """
    fmt = (
        '+%(process)-6d %(levelname)-9s '
        '%(name)-20s %(filename)20s:%(lineno)-5d '
        '[%(asctime)s] %(message)s')
    if debug:
        if isinstance(debug, str):
            logFileName = os.path.expanduser(debug)
        else:
            logFileName = os.path.join(logDir, debugLogFileName)
        logging.basicConfig(
            filename=logFileName,
            level=logging.DEBUG,
            format=fmt)
        # Keep urllib3 connection chatter out of the debug log
        logging.getLogger("urllib3").setLevel(logging.INFO)
    else:
        logging.basicConfig(stream=sys.stderr, level=logging.ERROR, format=fmt)


def setupFromConfig(config, debug=False):
    """
    Configure logging under the config's log dir.

    Loggers named in config.debugLevel (e.g. "jobflow.workflow") log at
    DEBUG even when the rest only reports errors.
    """
    setup(config.logDir, DEBUG_LOG_FILE_NAME, debug=debug)
    for name in config.debugLevel:
        logging.getLogger(name).setLevel(logging.DEBUG)
