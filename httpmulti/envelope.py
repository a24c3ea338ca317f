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

"""Building and parsing batch HTTP messages.

A batch request bundles subrequests as the ``message/http-request`` parts of
a ``multipart/parallel`` ``POST`` request::

    >>> from httpmulti.message import HTTPRequest
    >>> from httpmulti import envelope
    >>> requests = {
    ...     '1': HTTPRequest('GET', 'http://example.com/1.html'),
    ...     '2': HTTPRequest('POST', 'http://example.com/upload.cgi', body=b'Testing'),
    ... }
    >>> request = envelope.create_request('http://example.com/batch-processor', requests)

A batch processor reads the subrequests back out with `parse_request()`,
performs them however it likes, and answers with `create_response()`, a
``207 Multi-Status`` response whose ``message/http-response`` parts carry
the same request IDs. `parse_response()` turns that back into a mapping of
request IDs to subresponses.

Parts may come in any order. If two parts have the same request ID, the one
parsed last wins.

"""

import logging

from httpmulti.errors import InputError
from httpmulti.message import HTTPRequest, HTTPResponse
from httpmulti.multipart import MultipartParser, build_multipart
from httpmulti.parts import ID_FIELD, REQUEST_TYPE, RESPONSE_TYPE, decode_part, encode_part


log = logging.getLogger(__name__)

BATCH_METHOD = 'POST'
BATCH_STATUS = 207
BATCH_REASON = 'Multi-Status'
BATCH_PROTOCOL = 'HTTP/1.0'


class EnvelopeCodec(object):

    """Builds and parses batch HTTP messages.

    Parameter `parser` is the `MultipartParser` to split batch bodies with.
    If not given, a new in-memory `MultipartParser` is used.

    """

    def __init__(self, parser=None):
        if parser is None:
            parser = MultipartParser()
        self.parser = parser

    def create_request(self, uri, requests, headers=None):
        """Returns a batch `HTTPRequest` to `uri` carrying `requests`, a
        mapping of request IDs to `HTTPRequest` instances.

        The batch request is always a ``POST``. Optional parameter `headers`
        holds extra headers for the batch request itself, as a mapping or a
        sequence of ``(name, value)`` pairs.

        If `uri` is empty, or two keys of `requests` stand for the same
        request ID (such as ``1`` and ``"1"``), an `InputError` is raised. If a
        subrequest can't be serialized, a `BuildError` is raised.

        """
        if not uri:
            raise InputError('You must pass in a uri')
        body, content_type = self._build(REQUEST_TYPE, requests)

        request = HTTPRequest(BATCH_METHOD, uri, headers, body)
        request.set_header('Content-Type', content_type)
        request.set_header('MIME-Version', '1.0')
        return request

    def create_response(self, responses, headers=None):
        """Returns a ``207 Multi-Status`` batch `HTTPResponse` carrying
        `responses`, a mapping of request IDs to `HTTPResponse` instances.

        Optional parameter `headers` holds extra headers for the batch
        response itself. A ``Content-Length`` header is added unless one is
        given there.

        Unusable request IDs and subresponses raise errors as for
        `create_request()`.

        """
        body, content_type = self._build(RESPONSE_TYPE, responses)

        response = HTTPResponse(BATCH_STATUS, BATCH_REASON, headers, body, version=BATCH_PROTOCOL)
        response.set_header('Content-Type', content_type)
        if response.get_header('Content-Length') is None:
            response.headers.append(('Content-Length', str(len(body))))
        return response

    def parse_request(self, request):
        """Returns a dict of request IDs to the `HTTPRequest` instances
        carried in batch request `request`."""
        return self._parse(request, HTTPRequest)

    def parse_response(self, response):
        """Returns a dict of request IDs to the `HTTPResponse` instances
        carried in batch response `response`.

        The status of `response` is not checked; it's assumed to be a
        successful batch response.

        """
        return self._parse(response, HTTPResponse)

    def _build(self, content_type, messages):
        parts = []
        seen = set()
        for request_id, message in messages.items():
            part = encode_part(message, request_id, content_type)
            # Keys such as 1 and '1' would be written as the same ID.
            part_id = part[ID_FIELD]
            if part_id in seen:
                raise InputError('More than one message has request ID %r' % part_id)
            seen.add(part_id)
            parts.append(part)
        log.debug('Building batch of %d %s parts', len(parts), content_type)
        return build_multipart(parts)

    def _parse(self, message, message_class):
        parts = self.parser.parse(message.get_header('Content-Type'), message.body)

        # Now extract the message from each part and map it to its request
        # ID. Later parts replace earlier ones with the same ID.
        messages = {}
        for part in parts:
            request_id, submessage = decode_part(part, message_class)
            if request_id in messages:
                log.debug('Part %r appears more than once in batch; keeping the last', request_id)
            messages[request_id] = submessage
        return messages


def create_request(uri, requests, headers=None, parser=None):
    return EnvelopeCodec(parser).create_request(uri, requests, headers)


def create_response(responses, headers=None, parser=None):
    return EnvelopeCodec(parser).create_response(responses, headers)


def parse_request(request, parser=None):
    return EnvelopeCodec(parser).parse_request(request)


def parse_response(response, parser=None):
    return EnvelopeCodec(parser).parse_response(response)
