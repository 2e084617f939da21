"""
Google Chat notifications for job status changes.

For each technician who should hear about their jobs, add a webhook for
that user id into the rc file:

    [notify.google-chat-userhooks]
    42 = https://chat.googleapis.com/v1/spaces/...

Updates for one job are posted into the same chat thread unless
"reuse threads" is turned off.
"""

import logging
import os

import requests
import simplejson as json

from jobflow.domain import JobStatus

LOG = logging.getLogger(__name__)

STATUS_MESSAGES = {
    JobStatus.IN_PROGRESS: "Job has been started",
    JobStatus.COMPLETED: "Job has been completed",
    JobStatus.CANCELLED: "Job has been cancelled",
    JobStatus.ON_HOLD: "Job has been put on hold",
}

POST_TIMEOUT = 10


class ThreadIdCache(object):
    def __init__(self, cacheDir):
        self._cacheFile = os.path.join(cacheDir, 'chatnotify.json')

    def _read(self):
        try:
            with open(self._cacheFile, 'r') as cacheFile:
                return json.load(cacheFile)
        except (IOError, ValueError):
            return {}

    def _write(self, data):
        with open(self._cacheFile, 'w') as cacheFile:
            return json.dump(data, cacheFile)

    def get(self, key):
        return self._read().get(key)

    def put(self, key, value):
        data = self._read()
        if data.get(key) != value:
            data[key] = value
            self._write(data)

    def remove(self, key):
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


def _postToGChat(text, uri, threadId=None):
    payload = {
        'text': text,
    }
    headers = {
        'Content-Type': 'application/json; charset=UTF-8',
    }
    if threadId:
        payload['thread'] = {'name': threadId}
    ret = requests.post(uri, json=payload, headers=headers, timeout=POST_TIMEOUT)
    try:
        return ret.json()['thread']['name']
    except (KeyError, TypeError, ValueError):
        return None


def statusMessage(job, newStatus):
    message = STATUS_MESSAGES.get(
        newStatus, "Job status changed to {}".format(newStatus.value))
    title = job.title or "Job {}".format(job.id)
    return "{}: {}".format(title, message)


class ChatNotifier(object):
    def __init__(self, config, threadCache=None):
        self.config = config
        self._threadCache = threadCache

    @property
    def threadCache(self):
        if self._threadCache is None:
            self._threadCache = ThreadIdCache(self.config.cacheDir)
        return self._threadCache

    def statusChanged(self, job, newStatus, actor=None, comment=None):
        """
        Tell the assigned technician about a status change.

        Returns True if a message was posted. Delivery problems are
        logged and never raised.
        """
        if not job.is_assigned():
            return False
        hook = self.config.gChatUserHook(job.assigned_to)
        if hook is None:
            LOG.debug("No Google Chat hook for user %s", job.assigned_to)
            return False

        msg = "*{}*".format(statusMessage(job, newStatus))
        if actor is not None and actor.name:
            msg += " (by {})".format(actor.name)
        if comment and comment.strip():
            msg += '\n```' + comment.strip() + '```'

        threadKey = "{}:{}".format(hook, job.id)
        try:
            threadId = (self.threadCache.get(threadKey)
                        if self.config.notifyReuseThreads else None)
            newThreadId = _postToGChat(msg, hook, threadId=threadId)
        except (requests.RequestException, OSError) as e:
            LOG.warning("Failed to notify user %s about job %s: %s",
                        job.assigned_to, job.id, e)
            return False

        try:
            self.threadCache.put(threadKey, newThreadId)
        except IOError as e:
            LOG.warning("Could not cache chat thread for job %s: %s", job.id, e)
        return True
