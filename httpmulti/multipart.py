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

"""MIME multipart building and parsing for batches of HTTP messages.

The standard `email` package does almost everything needed here, except that
it wants ``message/*`` parts to hold RFC 822 messages. HTTP messages start
with a request or status line, so the generator and parser below treat the
bodies of those parts as opaque binary payloads instead.

"""

from email.generator import BytesGenerator
from email.feedparser import BytesFeedParser
from email.message import Message
from email.policy import Compat32
from email import errors
from io import BytesIO
import logging
import shutil
import tempfile

from httpmulti.errors import EnvelopeFormatError


log = logging.getLogger(__name__)

MULTIPART_TYPE = 'multipart/parallel'
PREAMBLE = 'HTTP MIME Message'


class HTTPPolicy(Compat32):

    """A `compat32` policy that keeps header values exactly as given.

    Values are written as UTF-8 with no folding and no RFC 2047 encoded
    words, and are read back with only the single space after the colon
    removed. Values read from bytes keep any non-ASCII octets as surrogate
    escapes.

    """

    def header_source_parse(self, sourcelines):
        name, value = sourcelines[0].split(':', 1)
        if value[:1] == ' ':
            value = value[1:]
        value = value + ''.join(sourcelines[1:])
        return (name, value.rstrip('\r\n'))

    def header_fetch_parse(self, name, value):
        return value

    def fold_binary(self, name, value):
        if not isinstance(value, str):
            return Compat32.fold_binary(self, name, value)
        folded = '%s: %s%s' % (name, value, self.linesep)
        return folded.encode('utf-8', 'surrogateescape')


# Long header values must not be folded, and part bodies are delimited with
# CRLF so a body ending in a bare CR survives the parser's newline trimming.
HTTP_POLICY = HTTPPolicy(linesep='\r\n', max_line_length=None)

DEFAULT_SPOOL_SIZE = 1024 * 1024
READ_SIZE = 8192


class HTTPGenerator(BytesGenerator):

    """A `BytesGenerator` that writes ``message/http-*`` payloads verbatim."""

    def __init__(self, outfp, mangle_from_=False, maxheaderlen=None, write_headers=True, policy=HTTP_POLICY):
        self.write_headers = write_headers
        BytesGenerator.__init__(self, outfp, mangle_from_, maxheaderlen, policy=policy)

    @classmethod
    def _make_boundary(cls, text=None):
        # Generator only rejects boundaries found alone on a line, but the
        # parser also accepts them followed by CRLF or trailing whitespace.
        boundary = BytesGenerator._make_boundary()
        if text is None:
            return boundary
        b = boundary
        counter = 0
        while ('--' + b).encode('ascii') in text:
            b = '%s.%d' % (boundary, counter)
            counter += 1
        return b

    def _process_message_http(self, msg):
        if msg.get_payload() is None:
            return
        # Decoding a binary payload gives back the exact original bytes.
        payload = msg.get_payload(decode=True)
        if not isinstance(payload, bytes):
            raise TypeError('bytes payload expected: %s' % type(payload))
        self._fp.write(payload)

    def _handle_message_http_request(self, msg):
        # Called by Generator to write MIME messages with a
        # content-type of message/http-request.
        self._process_message_http(msg)

    def _handle_message_http_response(self, msg):
        # Called by Generator to write MIME messages with a
        # content-type of message/http-response.
        self._process_message_http(msg)

    def _handle_multipart_parallel(self, msg):
        if msg.is_multipart() and msg.get_payload():
            self._handle_multipart(msg)
            return

        # Generator would write an empty part for an empty container, so
        # write only the close delimiter.
        boundary = msg.get_boundary()
        if not boundary:
            boundary = self._make_boundary()
            msg.set_boundary(boundary)
        if msg.preamble is not None:
            self._write_lines(msg.preamble)
            self.write(self._NL)
        self.write('--' + boundary + '--' + self._NL)

    def _write_headers(self, msg):
        if self.write_headers:
            BytesGenerator._write_headers(self, msg)


class HTTPMessage(Message):

    def __init__(self):
        Message.__init__(self, policy=HTTP_POLICY)

    def as_bytes(self, unixfrom=False, write_headers=True):
        fp = BytesIO()
        g = HTTPGenerator(fp, write_headers=write_headers)
        g.flatten(self, unixfrom=unixfrom)
        return fp.getvalue()


class MultipartHTTPMessage(HTTPMessage):
    def __init__(self):
        HTTPMessage.__init__(self)
        self.set_type(MULTIPART_TYPE)
        self.preamble = PREAMBLE


class HTTPPartMessage(HTTPMessage):

    """One part of a multipart batch, carrying a serialized HTTP message as
    its binary payload."""

    def __init__(self, content_type, headers, body):
        HTTPMessage.__init__(self)
        self['Content-Type'] = content_type
        for header, value in headers:
            self[header] = value
        self.set_payload(body)


def build_multipart(parts):
    """Builds a ``multipart/parallel`` container from `parts`, a sequence of
    messages such as `HTTPPartMessage` instances.

    Returns a tuple of the container body as bytes and the value of its
    ``Content-Type`` header, which carries the freshly chosen boundary.

    """
    msg = MultipartHTTPMessage()
    for part in parts:
        msg.attach(part)

    # The boundary is not assigned until we bake the multipart message, so
    # do this ahead of reading the content type.
    content = msg.as_bytes(write_headers=False)
    log.debug('Built %s container of %d parts with boundary %r',
        msg.get_content_type(), len(msg.get_payload() or ()), msg.get_boundary())
    return content, msg['Content-Type']


class HttpAverseParser(BytesFeedParser):

    """A feed parser that leaves the bodies of non-multipart parts alone.

    Without this, ``message/http-*`` parts would be parsed as RFC 822
    messages, and the HTTP start line would confuse the parser.

    """

    def _parse_headers(self, lines):
        BytesFeedParser._parse_headers(self, lines)
        if self._cur.get_content_maintype() != 'multipart':
            self._set_headersonly()


def check_content_type(content_type):
    """Returns the boundary of ``multipart/parallel`` header value
    `content_type`.

    If the value names some other type, or has no boundary parameter, an
    `EnvelopeFormatError` is raised.

    """
    if not content_type:
        raise EnvelopeFormatError('Message has no Content-Type header')
    mess = Message()
    mess['Content-Type'] = content_type
    if mess.get_content_type() != MULTIPART_TYPE:
        raise EnvelopeFormatError('Message is not %s but %s'
            % (MULTIPART_TYPE, mess.get_content_type()))
    boundary = mess.get_param('boundary')
    if not boundary:
        raise EnvelopeFormatError('Content-Type %r has no boundary' % content_type)
    return mess.get_boundary()


class MultipartParser(object):

    """Splits ``multipart/parallel`` bodies into their parts.

    By default bodies are buffered and parsed in memory. If `tmp_dir` is
    given, the body is first spooled into a temporary file in that
    directory, which moves to disk once it grows past `spool_size` bytes,
    and is parsed from there in chunks.

    A `MultipartParser` keeps no state between calls to `parse()`, so one
    instance can be shared by any number of threads.

    """

    def __init__(self, tmp_dir=None, spool_size=DEFAULT_SPOOL_SIZE):
        self.tmp_dir = tmp_dir
        self.spool_size = spool_size

    def parse(self, content_type, body):
        """Parses `body`, bytes or a binary file, as a multipart message with
        the ``Content-Type`` header value `content_type`.

        Returns the list of parts as `email.message.Message` instances, whose
        bodies are available through ``get_payload(decode=True)``. If the
        content type is wrong or the body isn't a complete multipart
        message, an `EnvelopeFormatError` is raised.

        """
        boundary = check_content_type(content_type)
        header = ('Content-Type: %s\r\n\r\n' % content_type).encode('ascii', 'surrogateescape')

        if self.tmp_dir is None:
            if hasattr(body, 'read'):
                body = body.read()
            return self._parse(header, BytesIO(body), boundary)

        with tempfile.SpooledTemporaryFile(max_size=self.spool_size, dir=self.tmp_dir) as spool:
            if hasattr(body, 'read'):
                shutil.copyfileobj(body, spool, READ_SIZE)
            else:
                spool.write(body)
            spool.seek(0)
            return self._parse(header, spool, boundary)

    def _parse(self, header, fp, boundary):
        p = HttpAverseParser(policy=HTTP_POLICY)
        p.feed(header)
        for chunk in iter(lambda: fp.read(READ_SIZE), b''):
            p.feed(chunk)
        message = p.close()

        if message.is_multipart():
            for defect in message.defects:
                if isinstance(defect, errors.CloseBoundaryNotFoundDefect):
                    raise EnvelopeFormatError('Multipart body was truncated before its close delimiter')
            parts = message.get_payload()
        else:
            # A container with no parts is only a close delimiter, which the
            # parser reports as a missing start boundary.
            fp.seek(0)
            if not self._has_close_delimiter(fp, boundary):
                raise EnvelopeFormatError('Body is not a MIME multipart message with boundary %r' % boundary)
            parts = []

        log.debug('Parsed %d parts with boundary %r', len(parts), boundary)
        return parts

    def _has_close_delimiter(self, fp, boundary):
        delimiter = ('--%s--' % boundary).encode('ascii', 'surrogateescape')
        for line in fp:
            if line.rstrip(b' \t\r\n') == delimiter:
                return True
        return False
