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

"""Exceptions raised while building, parsing and sending batch messages."""


class MultiError(Exception):
    """Base class for all `httpmulti` errors."""
    pass


class BuildError(MultiError):
    """An Exception raised when a batch message cannot be built."""
    pass


class InputError(BuildError, ValueError):
    """An Exception raised when an argument for building a batch message is
    missing or can't be written, such as an empty URI or an unusable
    request ID."""
    pass


class ParseError(MultiError):
    """An Exception raised when a batch message cannot be parsed."""
    pass


class EnvelopeFormatError(ParseError):
    """An Exception raised when the outer message is not a well formed
    ``multipart/parallel`` message."""
    pass


class MalformedPartError(ParseError):
    """An Exception raised when one part of a batch message can't be turned
    back into an HTTP message."""

    def __init__(self, message, request_id=None):
        self.request_id = request_id
        super(MalformedPartError, self).__init__(message)


class BadRequestError(ParseError):
    pass


class BadResponseError(ParseError):
    pass


class BatchError(MultiError):
    """An Exception raised when the `BatchClient` cannot open, add, or
    complete a batch request."""
    pass


class NonBatchResponseError(BatchError):
    """An exception raised when the `BatchClient` receives a response
    with an HTTP status code other than 207."""
    def __init__(self, status, reason):
        self.status = status
        self.reason = reason
        super(NonBatchResponseError, self).__init__(
            'Received non-batch response: %d %s' %
            (self.status, self.reason)
        )
