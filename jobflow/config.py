"""
rc-file configuration.

Sample rcfile:
    [history]
    on failure = open|closed  # default=open
    [workflow]
    reopen roles = admin, manager  # default=all roles
    reactivate roles = admin, manager, dispatcher  # default=all roles
    reopen requires comment = true|false  # default=false
    [notify]
    reuse threads = true|false  # default=true
    [notify.google-chat-userhooks]
    <user id> = https://chat.googleapis.com/v1/spaces/...
"""

import configparser
import os

from jobflow.domain import Role


class ConfigEnum(object):
    __slots__ = (
        'defaultName',
        '_enumVals',
    )

    def __init__(self, default, **enumVals):
        self._enumVals = enumVals
        assert default in enumVals
        self.defaultName = default
        for enumName in enumVals:
            assert enumName not in self.__slots__

    def names(self):
        return iter(self._enumVals.keys())

    def values(self):
        return iter(self._enumVals.values())

    @property
    def defaultVal(self):
        return self._enumVals[self.defaultName]

    def __getattr__(self, attr):
        assert attr != '_enumVals'
        if attr in self._enumVals:
            return self._enumVals[attr]
        else:
            return object.__getattribute__(self, attr)


HISTORY_FAIL_OPEN = "open"
HISTORY_FAIL_CLOSED = "closed"

HISTORY_ON_FAILURE = ConfigEnum(
    'OPEN',  # default
    OPEN=HISTORY_FAIL_OPEN,
    CLOSED=HISTORY_FAIL_CLOSED,
)

DB_FILE_NAME = "jobflow.db"


class ConfigError(Exception):
    pass


def _getConfig(cfgParser, section, option, defaultValue=None):
    if not cfgParser.has_section(section):
        return defaultValue
    if not cfgParser.has_option(section, option):
        return defaultValue
    return cfgParser.get(section, option)


def _getEnumConfig(cfgParser, section, option, enum):
    optionVal = _getConfig(
        cfgParser, section, option, enum.defaultVal)
    if optionVal not in list(enum.values()):
        raise ConfigError(
            "RC file has invalid \"{section}.{option}\" setting {optionVal}.  Valid "
            "options: {allowedVals}".format(
                section=section,
                option=option,
                optionVal=optionVal,
                allowedVals=", ".join(list(enum.values()))))

    return optionVal


def _getDictConfig(cfgParser, section):
    options = {}
    if not cfgParser.has_section(section):
        return options
    for option in cfgParser.options(section):
        options[option] = _getConfig(cfgParser, section, option, None)
    return options


def _getBoolConfig(cfgParser, section, option, default):
    val = _getConfig(cfgParser, section, option, None)
    if val is None:
        return default
    if val.lower() == 'true':
        return True
    elif val.lower() == 'false':
        return False
    else:
        raise ConfigError(
            "RC file has invalid \"{section}.{option}\" setting {optionVal}.  Valid "
            "options: true, false".format(
                section=section,
                option=option,
                optionVal=val))


def _getRolesConfig(cfgParser, section, option):
    """None when unset, meaning every role."""
    val = _getConfig(cfgParser, section, option, None)
    if val is None:
        return None
    roles = set()
    for name in val.split(","):
        if not name.strip():
            continue
        try:
            roles.add(Role.parse(name))
        except ValueError:
            raise ConfigError(
                "RC file has invalid role {name!r} in \"{section}.{option}\".  "
                "Valid roles: {allowedVals}".format(
                    name=name.strip(),
                    section=section,
                    option=option,
                    allowedVals=", ".join(r.value for r in Role))) from None
    return frozenset(roles)


_VAR_OPTIONS = object()


class Config(object):
    # pylint: disable=too-many-instance-attributes
    validConfig = {
        'history': {'on failure'},
        'workflow': {'reopen roles', 'reactivate roles', 'reopen requires comment'},
        'notify': {'reuse threads'},
        'notify.google-chat-userhooks': _VAR_OPTIONS,
    }

    def _validateConfigParser(self, cfgParser):
        cfgSections = set(cfgParser.sections())
        unknownSections = cfgSections - set(self.validConfig.keys())
        if unknownSections:
            raise ConfigError(
                "RC file has unknown configuration sections: {}".format(
                    ", ".join(sorted(unknownSections))))
        for section in cfgSections:
            cfgValues = set(cfgParser.options(section))
            validSectionConfig = self.validConfig[section]
            if validSectionConfig is not _VAR_OPTIONS:
                assert isinstance(validSectionConfig, set)
                unknownOptions = cfgValues - validSectionConfig
                if unknownOptions:
                    raise ConfigError(
                        "RC file has unknown configuration options in "
                        "section \"{}\": {}".format(
                            section, ", ".join(sorted(unknownOptions))))

    def __init__(self, options):
        stateDir = options.stateDir
        self.options = options
        self._dbDir = os.path.expanduser(stateDir) + "/db/"
        self._logDir = os.path.expanduser(stateDir) + "/log/"
        self._cacheDir = os.path.expanduser(stateDir) + "/cache/"
        self.debugLevel = options.debugLevel if options.debugLevel else []

        rcFile = os.path.expanduser(options.rcFile)
        cfgParser = configparser.RawConfigParser()
        cfgParser.read(rcFile)

        self._historyOnFailure = _getEnumConfig(
            cfgParser, 'history', 'on failure', HISTORY_ON_FAILURE)

        self._reopenRoles = _getRolesConfig(cfgParser, 'workflow', 'reopen roles')
        self._reactivateRoles = _getRolesConfig(
            cfgParser, 'workflow', 'reactivate roles')
        self._reopenRequiresComment = _getBoolConfig(
            cfgParser, 'workflow', 'reopen requires comment', False)

        self._notifyReuseThreads = _getBoolConfig(
            cfgParser, 'notify', 'reuse threads', True)
        self._gChatUserHooks = _getDictConfig(
            cfgParser, 'notify.google-chat-userhooks')

        self._validateConfigParser(cfgParser)

    @staticmethod
    def checkDir(dirName):
        if not os.access(dirName, os.W_OK | os.X_OK | os.R_OK):
            os.makedirs(dirName)
        return dirName

    @property
    def dbDir(self):
        return self.checkDir(self._dbDir)

    @property
    def dbFile(self):
        return os.path.join(self.dbDir, DB_FILE_NAME)

    @property
    def logDir(self):
        return self.checkDir(self._logDir)

    @property
    def cacheDir(self):
        return self.checkDir(self._cacheDir)

    @property
    def historyFailClosed(self):
        return self._historyOnFailure == HISTORY_FAIL_CLOSED

    @property
    def reopenRoles(self):
        return self._reopenRoles

    @property
    def reactivateRoles(self):
        return self._reactivateRoles

    @property
    def reopenRequiresComment(self):
        return self._reopenRequiresComment

    @property
    def notifyReuseThreads(self):
        return self._notifyReuseThreads

    @property
    def hasNotifyHooks(self):
        return bool(self._gChatUserHooks)

    def gChatUserHook(self, userId):
        return self._gChatUserHooks.get(str(userId))
