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

from urllib.parse import urljoin
import logging
import traceback

import httplib2

from httpmulti.envelope import EnvelopeCodec, BATCH_STATUS
from httpmulti.errors import BatchError, NonBatchResponseError
from httpmulti.message import HTTPResponse

__all__ = ('BatchClient', 'BatchRequest', 'to_httplib2', 'log')

log = logging.getLogger(__name__)

BATCH_PATH = '/batch-processor'

# lets prefer gzip encoding on the batch response
BATCH_ACCEPT_ENCODING = 'gzip;q=1.0, identity; q=0.5, *;q=0'


def loggable(content):
    """Returns body `content` as text fit for a log message."""
    if isinstance(content, bytes):
        return content.decode('utf-8', 'replace')
    return content


def to_httplib2(response):
    """Converts `HTTPResponse` instance `response` into the tuple of an
    `httplib2.Response` and the response body, as `httplib2.Http.request()`
    would return them.

    Header names are lower cased, and repeated headers are joined with
    commas.

    """
    info = {}
    for header, value in response.headers:
        header = header.lower()
        if header in info:
            info[header] = '%s, %s' % (info[header], value)
        else:
            info[header] = value
    info['status'] = str(response.status)

    httpresponse = httplib2.Response(info)
    httpresponse.reason = response.reason
    return httpresponse, response.body


class BatchRequest(object):

    """A collection of HTTP requests that should be performed in a batch as
    one request."""

    def __init__(self):
        self.requests = list()

    def __len__(self):
        """Returns the number of subrequests there are to perform."""
        return len(self.requests)

    def add(self, request, callback):
        """Adds subrequest `request`, an `HTTPRequest` instance, to the batch.

        Once the batch is performed, `callback` is called with three
        positional parameters:

        * the URI of the original subrequest
        * an `httplib2.Response` representing the subresponse and its headers
        * the body of the subresponse, as bytes

        """
        self.requests.append((request, callback))

    def construct(self):
        """Returns the mapping of request IDs to subrequests to send.

        Subrequests are numbered from 1 in the order they were added.

        """
        return dict((str(request_id), request)
            for request_id, (request, callback) in enumerate(self.requests, 1))

    def process(self, client):
        """Performs the batch request through `BatchClient` instance `client`
        and dispatches the subresponses to their callbacks.

        If there are no subrequests, no batch request occurs.

        """
        if not len(self):
            log.warning('No requests were made for the batch')
            return
        responses = client.request(self.construct())
        self.handle_response(responses)

    def handle_response(self, responses):
        """Dispatches `responses`, a mapping of request IDs to `HTTPResponse`
        instances, to the callbacks of the matching subrequests.

        If there's no subresponse for one of the subrequests, a `BatchError`
        is raised.

        """
        for request_id, (request, callback) in enumerate(self.requests, 1):
            try:
                response = responses[str(request_id)]
            except KeyError:
                raise BatchError('Batch response included no response for request %d' % request_id)
            httpresponse, body = to_httplib2(response)
            callback(request.uri, httpresponse, body)


class BatchClient(object):

    """Sort of an HTTP client for performing a batch HTTP request."""

    def __init__(self, endpoint=None, http=None, codec=None):
        """Configures the `BatchClient` instance to use the given batch
        processor endpoint and user agent object.

        Parameter `endpoint` is the base URL at which to find the batch
        processor to which to submit the batch request. The batch processor
        should be the resource ``/batch-processor`` at the root of the site
        specified in `endpoint`.

        Optional parameter `http` specifies an `httplib2.Http` instance to use
        for making the batch request. If not given, a new `httplib2.Http`
        instance is used. Optional parameter `codec` is the `EnvelopeCodec`
        with which to build and parse batch messages.

        """
        if http is None:
            http = httplib2.Http()
        if codec is None:
            codec = EnvelopeCodec()
        self.endpoint = endpoint
        self.http = http
        self.codec = codec

    @property
    def batch_url(self):
        if self.endpoint is None:
            raise BatchError("There's no batch processor endpoint to which to send a batch request")
        return urljoin(self.endpoint, BATCH_PATH)

    def request(self, requests, headers=None):
        """Performs subrequests `requests`, a mapping of request IDs to
        `HTTPRequest` instances, as one batch request.

        Returns a dict of request IDs to `HTTPResponse` instances. If the
        batch processor answers with anything but a ``207 Multi-Status``
        response, a `NonBatchResponseError` is raised.

        """
        batch = self.codec.create_request(self.batch_url, requests, headers)
        batch_headers = dict(batch.headers)
        batch_headers.setdefault('Accept-Encoding', BATCH_ACCEPT_ENCODING)

        req_log = logging.getLogger('.'.join((__name__, 'request')))
        if req_log.isEnabledFor(logging.DEBUG):
            req_log.debug('Making request:\n%s %s\n%s\n\n%s', batch.method, batch.uri,
                '\n'.join([
                    '%s: %s' % (k, v) for k, v in batch_headers.items()
                ]), loggable(batch.body))

        response, content = self.http.request(batch.uri, method=batch.method,
            body=batch.body, headers=batch_headers)

        resp_log = logging.getLogger('.'.join((__name__, 'response')))
        if resp_log.isEnabledFor(logging.DEBUG):
            resp_log.debug('Got response:\n%s\n\n%s',
                '\n'.join([
                    '%s: %s' % (k, v) for k, v in response.items()
                ]), loggable(content))

        # was the response okay?
        if response.status != BATCH_STATUS:
            log.debug('Received non-batch response %d %s with content:\n%s',
                response.status, response.reason, loggable(content))
            raise NonBatchResponseError(response.status, response.reason)

        envelope = HTTPResponse(response.status, response.reason,
            [(k, v) for k, v in response.items() if k != 'status'], content)
        return self.codec.parse_response(envelope)

    def batch_request(self):
        """Opens a batch request.

        If a batch request is already open, a `BatchError` is raised.

        You can use this method with the ``with`` statement::

        >>> with client.batch_request() as batch:
        ...     batch.add(HTTPRequest('GET', uri), callback=handle_result)

        The batch request is then completed automatically at the end of the
        ``with`` block.

        """
        if hasattr(self, 'batchrequest'):
            # hey, we already have a request. this is invalid...
            log.debug('Batch request previously opened at:\n'
                + ''.join(traceback.format_list(self._opened)))
            log.debug('New now at:\n' + ''.join(traceback.format_stack()))
            raise BatchError("There's already an open batch request")
        self.batchrequest = BatchRequest()
        self._opened = traceback.extract_stack()

        # Return ourself so we can enter a "with" context.
        return self

    def complete_batch(self):
        """Closes the open batch request, performing it and dispatching the
        subresponses.

        If no batch request is open, a `BatchError` is raised.

        """
        if not hasattr(self, 'batchrequest'):
            raise BatchError("There's no open batch request to complete")
        try:
            log.info('Making batch request for %d items', len(self.batchrequest))
            self.batchrequest.process(self)
        finally:
            del self.batchrequest

    def clear_batch(self):
        """Closes the open batch request without performing it."""
        if hasattr(self, 'batchrequest'):
            del self.batchrequest

    def batch(self, request, callback):
        """Adds `HTTPRequest` instance `request` to the open batch request,
        to be answered through `callback`.

        If no batch request is open, a `BatchError` is raised.

        """
        if not hasattr(self, 'batchrequest'):
            raise BatchError("There's no open batch request to add an object to")
        self.batchrequest.add(request, callback)

    def __enter__(self):
        return self.batchrequest

    def __exit__(self, exc_type, exc_value, tb):
        if exc_type is not None:
            # Exception! Let's forget the whole thing.
            self.clear_batch()
        else:
            # Finished the context. Try to complete the request.
            self.complete_batch()
