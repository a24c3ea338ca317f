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

"""Converting single HTTP messages to and from parts of a batch.

Every part carries one serialized HTTP message as its binary body, and a
``Multipart-Request-ID`` header that ties a subrequest to its subresponse.

"""

from httpmulti.errors import BuildError, InputError, MalformedPartError, ParseError
from httpmulti.multipart import HTTPPartMessage


ID_FIELD = 'Multipart-Request-ID'
REQUEST_TYPE = 'message/http-request'
RESPONSE_TYPE = 'message/http-response'


def encode_id(request_id):
    """Returns `request_id` as the string written in a part's
    ``Multipart-Request-ID`` header.

    IDs are opaque: any string is written as its UTF-8 octets, spaces
    included. An ID that can't be carried on a single header line raises an
    `InputError`.

    """
    request_id = str(request_id)
    if '\r' in request_id or '\n' in request_id:
        raise InputError('Request ID %r contains a line break' % request_id)
    try:
        request_id.encode('utf-8')
    except UnicodeEncodeError as exc:
        raise InputError('Request ID %r is not valid text: %s' % (request_id, exc)) from exc
    return request_id


def decode_id(value):
    """Returns the request ID held in header value `value`, as read by the
    multipart parser."""
    value = value.rstrip('\r\n')
    # Octets read off the wire are kept as surrogate escapes.
    return value.encode('utf-8', 'surrogateescape').decode('utf-8')


def encode_part(message, request_id, content_type):
    """Returns an `HTTPPartMessage` holding HTTP message `message`, tagged
    with `request_id`.

    Parameter `content_type` is the type of the part, either
    ``message/http-request`` or ``message/http-response``. The message is
    carried with a ``binary`` transfer encoding so its body survives byte for
    byte.

    If `message` can't be serialized, a `BuildError` is raised.

    """
    headers = (
        ('Content-Disposition', 'inline'),
        ('Content-Transfer-Encoding', 'binary'),
        ('MIME-Version', '1.0'),
        (ID_FIELD, encode_id(request_id)),
    )
    try:
        body = message.as_bytes()
    except UnicodeEncodeError as exc:
        raise BuildError('Could not serialize message for part %r: %s' % (request_id, exc)) from exc
    return HTTPPartMessage(content_type, headers, body)


def decode_part(part, message_class):
    """Returns the request ID and the HTTP message held in `part`, a parsed
    `email.message.Message`.

    Parameter `message_class` is `HTTPRequest` or `HTTPResponse`, whichever
    the part body should be read as. If the part has no readable request ID,
    or its body can't be read as a `message_class`, a `MalformedPartError`
    is raised.

    """
    value = part.get(ID_FIELD)
    if value is None:
        raise MalformedPartError('Batch message included a part with no %s header' % ID_FIELD)
    try:
        request_id = decode_id(str(value))
    except UnicodeError as exc:
        raise MalformedPartError('Batch message included a part with an invalid %s header: %r'
            % (ID_FIELD, value)) from exc

    body = part.get_payload(decode=True)
    if body is None:
        raise MalformedPartError('Missing payload in part %r' % request_id, request_id)
    try:
        message = message_class.parse(body)
    except ParseError as exc:
        raise MalformedPartError('Could not decode part %r: %s' % (request_id, exc), request_id) from exc
    return request_id, message
