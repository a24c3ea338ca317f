# Copyright (c) 2009-2010 Six Apart Ltd.
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
# * Redistributions of source code must retain the above copyright notice,
#   this list of conditions and the following disclaimer.
#
# * Redistributions in binary form must reproduce the above copyright notice,
#   this list of conditions and the following disclaimer in the documentation
#   and/or other materials provided with the distribution.
#
# * Neither the name of Six Apart Ltd. nor the names of its contributors may
#   be used to endorse or promote products derived from this software without
#   specific prior written permission.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE
# LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR
# CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF
# SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS
# INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN
# CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE)
# ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.

"""HTTP requests and responses, and their wire format.

`HTTPRequest` and `HTTPResponse` hold a start line, an ordered list of
headers and a body of bytes. `parse()` reads a message from its HTTP/1.x
serialization and `as_bytes()` writes it back out, so that a message carried
inside a batch part comes out exactly as it went in.

"""

import re

from httpmulti.errors import BadRequestError, BadResponseError


CRLF = b"\r\n"
HEADER_ENCODING = 'iso-8859-1'

# The head ends at the first empty line, whatever line endings were used.
HEAD_END = re.compile(b"\r?\n\r?\n")
LINE_END = re.compile(r"\r?\n")
STATUS_CODE = re.compile(r"[0-9]+\Z")


def normalize_headers(headers):
    """Returns `headers`, a mapping or a sequence of ``(name, value)`` pairs,
    as a new list of pairs."""
    if not headers:
        return []
    if hasattr(headers, 'items'):
        headers = headers.items()
    return [(name, value) for name, value in headers]


class HTTPMessage(object):

    """The headers and body shared by HTTP requests and responses."""

    error = ValueError

    def __init__(self, headers=None, body=None, version='HTTP/1.1'):
        self.headers = normalize_headers(headers)
        if body is None:
            body = b''
        elif isinstance(body, str):
            body = body.encode('utf-8')
        self.body = body
        self.version = version

    def get_header(self, name, default=None):
        """Returns the value of the first header called `name`, compared
        case-insensitively, or `default` if there's no such header."""
        name = name.lower()
        for header, value in self.headers:
            if header.lower() == name:
                return value
        return default

    def set_header(self, name, value):
        """Replaces every header called `name` with a single header holding
        `value`."""
        self.remove_header(name)
        self.headers.append((name, value))

    def remove_header(self, name):
        name = name.lower()
        self.headers = [(h, v) for h, v in self.headers if h.lower() != name]

    def start_line(self):
        raise NotImplementedError()

    def as_bytes(self):
        """Returns the HTTP wire serialization of this message: the start
        line, the headers, an empty line and the body."""
        lines = [self.start_line()]
        lines.extend("%s: %s" % (header, value) for header, value in self.headers)
        head = "\r\n".join(lines).encode(HEADER_ENCODING)
        return head + CRLF + CRLF + self.body

    @classmethod
    def split_message(cls, data):
        """Splits serialized message `data` into its start line, its header
        pairs and its body bytes."""
        if isinstance(data, str):
            data = data.encode(HEADER_ENCODING)
        mo = HEAD_END.search(data)
        if mo is None:
            head, body = data, b''
        else:
            head, body = data[:mo.start()], data[mo.end():]

        lines = LINE_END.split(head.decode(HEADER_ENCODING).rstrip("\r\n"))
        start_line = lines.pop(0)
        if not start_line.strip():
            raise cls.error('Message has no start line')

        headers = []
        for line in lines:
            if line[:1] in (' ', '\t'):
                # Continuation of a folded header.
                if not headers:
                    raise cls.error('Message headers begin with a continuation line')
                header, value = headers.pop()
                headers.append((header, '%s %s' % (value, line.strip())))
                continue
            try:
                header, value = line.split(':', 1)
            except ValueError:
                raise cls.error('Malformed header line: %r' % line)
            # Only the one space written after the colon is dropped; the
            # rest of the value is kept as it is.
            if value[:1] == ' ':
                value = value[1:]
            headers.append((header.strip(), value))

        return start_line, headers, body

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return self.__dict__ == other.__dict__

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None


class HTTPRequest(HTTPMessage):

    """An HTTP request: a method, a target URI, headers and a body."""

    error = BadRequestError

    def __init__(self, method, uri, headers=None, body=None, version='HTTP/1.1'):
        super(HTTPRequest, self).__init__(headers, body, version)
        self.method = method
        self.uri = uri

    def start_line(self):
        if self.version is None:
            return "%s %s" % (self.method, self.uri)
        return "%s %s %s" % (self.method, self.uri, self.version)

    @classmethod
    def parse(cls, data):
        """Reads an `HTTPRequest` from its wire serialization `data`.

        If the request line doesn't hold a method and a URI, a
        `BadRequestError` is raised.

        """
        request_line, headers, body = cls.split_message(data)
        parts = request_line.split()
        if len(parts) == 2:
            method, uri = parts
            version = None
        elif len(parts) == 3:
            method, uri, version = parts
        else:
            raise BadRequestError('Malformed request line: %r' % request_line)
        return cls(method, uri, headers, body, version)

    def __repr__(self):
        return '<HTTPRequest %s %s>' % (self.method, self.uri)


class HTTPResponse(HTTPMessage):

    """An HTTP response: a status code, a reason phrase, headers and a
    body."""

    error = BadResponseError

    def __init__(self, status, reason='', headers=None, body=None, version='HTTP/1.1'):
        super(HTTPResponse, self).__init__(headers, body, version)
        self.status = int(status)
        self.reason = reason or ''

    def start_line(self):
        return ' '.join(part for part in (self.version, str(self.status), self.reason) if part)

    @classmethod
    def parse(cls, data):
        """Reads an `HTTPResponse` from its wire serialization `data`.

        The protocol may be left off the status line (as in ``200 OK``) and
        so may the reason phrase. If there's no numeric status code, a
        `BadResponseError` is raised.

        """
        status_line, headers, body = cls.split_message(data)
        version = None
        if status_line.startswith('HTTP/'):
            parts = status_line.split(None, 2)
            version = parts.pop(0)
        else:
            parts = status_line.split(None, 1)
        if not parts or not STATUS_CODE.match(parts[0]):
            raise BadResponseError('Malformed status line: %r' % status_line)
        # sometimes there is no message
        reason = parts[1].strip() if len(parts) > 1 else ''
        return cls(int(parts[0]), reason, headers, body, version)

    def __repr__(self):
        return '<HTTPResponse %d %s>' % (self.status, self.reason)
