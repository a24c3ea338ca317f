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

import logging

from httpmulti.message import HTTPRequest, HTTPResponse


def log():
    """Sends all log messages, down to debug level, to stderr."""
    logging.basicConfig(level=logging.DEBUG,
        format='%(asctime)s %(levelname)s %(name)s %(message)s')


def sample_requests():
    return {
        '1': HTTPRequest('GET', 'http://example.com/1.html',
            [('Accept', 'text/html')]),
        '2': HTTPRequest('GET', 'http://example.com/2.html',
            [('Accept', 'text/html'),
             ('If-Modified-Since', 'Sat, 29 Oct 1994 19:43:31 GMT')]),
        '3': HTTPRequest('POST', 'http://example.com/upload.cgi',
            [('Content-Type', 'text/plain')], b'Testing\n'),
    }


def sample_responses():
    return {
        '1': HTTPResponse(500, 'Internal Server Error',
            [('Content-Length', '0'), ('Content-Type', 'text/plain')]),
        '2': HTTPResponse(404, 'Not Found', [('Content-Type', 'text/plain')],
            b'http://example.com/upload.cgi not found\n'),
        '3': HTTPResponse(200, 'OK',
            [('Content-Type', 'text/html'),
             ('ETag', '7d19575d56b4df91085839f5a9925753d91d8cb2')],
            b'<html>\n    <head>\n        <title>Hello World</title>\n    </head>\n'
            b'    <body>\n        <p>Bonjour! Nihau! Guten Morgen!</p>\n    </body>\n</html>\n'),
    }
