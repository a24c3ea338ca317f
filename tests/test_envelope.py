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

import tempfile
import unittest

from httpmulti import envelope
from httpmulti.envelope import EnvelopeCodec
from httpmulti.errors import (BuildError, EnvelopeFormatError, InputError,
    MalformedPartError, ParseError, BadRequestError, BadResponseError)
from httpmulti.message import HTTPRequest, HTTPResponse
from httpmulti.multipart import HTTPPartMessage, MultipartParser, build_multipart
from httpmulti.parts import ID_FIELD, REQUEST_TYPE, RESPONSE_TYPE, encode_part
from tests import utils


class TestBatchRequests(unittest.TestCase):

    def test_scenario(self):
        requests = {
            1: HTTPRequest('GET', 'http://example.com/1.html'),
            2: HTTPRequest('GET', 'http://example.com/2.html'),
            3: HTTPRequest('POST', 'http://example.com/upload.cgi', body=b'Testing\n'),
        }
        request = envelope.create_request('http://example.com/multi', requests)

        self.assertEqual(request.method, 'POST')
        self.assertEqual(request.uri, 'http://example.com/multi')
        self.assertTrue(request.get_header('Content-Type').startswith('multipart/parallel; boundary='))

        parsed = envelope.parse_request(request)
        self.assertEqual(sorted(parsed.keys()), ['1', '2', '3'])
        self.assertEqual(parsed['1'].method, 'GET')
        self.assertEqual(parsed['1'].uri, 'http://example.com/1.html')
        self.assertEqual(parsed['2'].method, 'GET')
        self.assertEqual(parsed['2'].uri, 'http://example.com/2.html')
        self.assertEqual(parsed['3'].method, 'POST')
        self.assertEqual(parsed['3'].uri, 'http://example.com/upload.cgi')
        self.assertEqual(parsed['3'].body, b'Testing\n')

    def test_round_trip(self):
        requests = utils.sample_requests()
        request = envelope.create_request('http://example.com/batch-processor', requests)
        self.assertEqual(envelope.parse_request(request), requests)

        # And all the way through the wire format of the batch request.
        wire = HTTPRequest.parse(request.as_bytes())
        self.assertEqual(wire, request)
        self.assertEqual(envelope.parse_request(wire), requests)

    def test_empty(self):
        request = envelope.create_request('http://example.com/batch-processor', {})
        self.assertEqual(request.method, 'POST')
        self.assertTrue(request.body)
        self.assertEqual(envelope.parse_request(request), {})

    def test_part_headers(self):
        requests = dict((str(n), HTTPRequest('GET', '/%d' % n)) for n in (1, 2, 3))
        request = envelope.create_request('http://example.com/batch-processor', requests)

        parts = MultipartParser().parse(request.get_header('Content-Type'), request.body)
        self.assertEqual(len(parts), 3)
        self.assertEqual(sorted(part[ID_FIELD] for part in parts), ['1', '2', '3'])
        for part in parts:
            self.assertEqual(part.get_content_type(), 'message/http-request')
            self.assertEqual(part['Content-Disposition'], 'inline')
            self.assertEqual(part['Content-Transfer-Encoding'], 'binary')
            self.assertEqual(part['MIME-Version'], '1.0')
            self.assertEqual(part.get_payload(decode=True), requests[part[ID_FIELD]].as_bytes())

    def test_outer_headers(self):
        request = envelope.create_request('http://example.com/batch-processor',
            utils.sample_requests(), {'Authorization': 'Basic Zm9vOmJhcg=='})
        self.assertEqual([h for h, v in request.headers],
            ['Authorization', 'Content-Type', 'MIME-Version'])
        self.assertEqual(request.get_header('Authorization'), 'Basic Zm9vOmJhcg==')
        self.assertEqual(request.get_header('MIME-Version'), '1.0')

        # A given Content-Type is replaced with the multipart one.
        request = envelope.create_request('http://example.com/batch-processor',
            utils.sample_requests(), [('Content-Type', 'text/plain')])
        self.assertEqual(len([h for h, v in request.headers if h == 'Content-Type']), 1)
        self.assertTrue(request.get_header('Content-Type').startswith('multipart/parallel'))

    def test_opaque_ids(self):
        requests = {
            'caf\xe9': HTTPRequest('GET', '/x'),
            ' a  b ': HTTPRequest('GET', '/spaces'),
            '\tx': HTTPRequest('GET', '/tab'),
            '': HTTPRequest('GET', '/empty'),
            '中文': HTTPRequest('GET', '/wide'),
        }
        request = envelope.create_request('http://example.com/batch-processor', requests)
        self.assertTrue(b'Multipart-Request-ID: caf\xc3\xa9\r\n' in request.body)
        self.assertFalse(b'=?utf-8?' in request.body)

        self.assertEqual(envelope.parse_request(request), requests)
        wire = HTTPRequest.parse(request.as_bytes())
        self.assertEqual(envelope.parse_request(wire), requests)

    def test_bad_ids(self):
        for request_id in ('a\r\nX-Injected: yes', 'trailing\n', 'bare\rcr', '\ud800'):
            self.assertRaises(InputError, envelope.create_request,
                'http://example.com/batch-processor', {request_id: HTTPRequest('GET', '/')})

    def test_colliding_ids(self):
        requests = {
            1: HTTPRequest('GET', '/int'),
            '1': HTTPRequest('GET', '/str'),
        }
        self.assertRaises(InputError, envelope.create_request,
            'http://example.com/batch-processor', requests)
        self.assertRaises(InputError, envelope.create_response,
            {1: HTTPResponse(200, 'OK'), '1': HTTPResponse(404, 'Not Found')})

    def test_unwritable_message(self):
        requests = {'1': HTTPRequest('GET', '/x', [('X-Name', '中')])}
        try:
            envelope.create_request('http://example.com/batch-processor', requests)
        except BuildError as exc:
            self.assertFalse(isinstance(exc, InputError))
            self.assertTrue(isinstance(exc.__cause__, UnicodeEncodeError))
        else:
            self.fail('Built a batch with a header that cannot be written')

        responses = {'1': HTTPResponse(200, 'OK', [('X-Name', '中')])}
        self.assertRaises(BuildError, envelope.create_response, responses)

    def test_header_whitespace(self):
        requests = {'1': HTTPRequest('GET', '/x', [('X-A', 'v '), ('X-B', '  two')])}
        request = envelope.create_request('http://example.com/batch-processor', requests)
        self.assertEqual(envelope.parse_request(request), requests)

    def test_no_uri(self):
        for uri in (None, ''):
            self.assertRaises(InputError, envelope.create_request, uri, utils.sample_requests())

        # Missing arguments are both build errors and value errors.
        self.assertTrue(issubclass(InputError, BuildError))
        self.assertTrue(issubclass(InputError, ValueError))
        self.assertFalse(issubclass(InputError, ParseError))


class TestBatchResponses(unittest.TestCase):

    def test_round_trip(self):
        responses = utils.sample_responses()
        response = envelope.create_response(responses)

        self.assertEqual(response.status, 207)
        self.assertEqual(response.reason, 'Multi-Status')
        self.assertEqual(response.version, 'HTTP/1.0')
        self.assertTrue(response.get_header('Content-Type').startswith('multipart/parallel; boundary='))
        self.assertEqual(response.get_header('Content-Length'), str(len(response.body)))
        self.assertEqual(envelope.parse_response(response), responses)

        wire = HTTPResponse.parse(response.as_bytes())
        self.assertTrue(response.as_bytes().startswith(b'HTTP/1.0 207 Multi-Status\r\n'))
        self.assertEqual(envelope.parse_response(wire), responses)

    def test_empty(self):
        response = envelope.create_response({})
        self.assertEqual(response.status, 207)
        self.assertEqual(response.get_header('Content-Length'), str(len(response.body)))
        self.assertEqual(envelope.parse_response(response), {})

    def test_content_length(self):
        response = envelope.create_response(utils.sample_responses(),
            [('Date', 'Tue, 10 Mar 2009 18:52:12 GMT'), ('Content-Length', '12345')])
        self.assertEqual(response.get_header('Date'), 'Tue, 10 Mar 2009 18:52:12 GMT')
        self.assertEqual(response.get_header('Content-Length'), '12345')

    def test_binary(self):
        body = bytes(range(256)) * 4 + b'\r\n--===============1234==\r\n\r\n--foom--\r\n\r'
        responses = {
            'blob': HTTPResponse(200, 'OK', [('Content-Type', 'application/octet-stream')], body),
            'newline': HTTPResponse(200, 'OK', [], b'ends with a newline\n'),
            'crlf': HTTPResponse(200, 'OK', [], b'\r\n'),
            'empty': HTTPResponse(204, 'No Content'),
        }
        parsed = envelope.parse_response(envelope.create_response(responses))
        self.assertEqual(parsed['blob'].body, body)
        self.assertEqual(parsed, responses)

    def test_status_not_checked(self):
        response = envelope.create_response(utils.sample_responses())
        response.status = 500
        self.assertEqual(envelope.parse_response(response), utils.sample_responses())

    def test_handwritten(self):
        response = HTTPResponse(207, 'Multi-Status',
            [('Content-Type', 'multipart/parallel; boundary="foomfoomfoom"')],
            b"""wah-ho, wah-hay

--foomfoomfoom
Content-Type: message/http-response
Multipart-Request-ID: 2

200 OK
Content-Type: application/json

{"name": "drang"}
--foomfoomfoom
Content-Type: message/http-response
Multipart-Request-ID: 1

404 Not Found
Content-Type: application/json

{"oops": null}
--foomfoomfoom--""")

        parsed = envelope.parse_response(response)
        self.assertEqual(sorted(parsed.keys()), ['1', '2'])
        self.assertEqual(parsed['1'].status, 404)
        self.assertEqual(parsed['1'].body, b'{"oops": null}')
        self.assertEqual(parsed['2'].status, 200)
        self.assertEqual(parsed['2'].get_header('Content-Type'), 'application/json')
        self.assertEqual(parsed['2'].body, b'{"name": "drang"}')


class TestParseErrors(unittest.TestCase):

    def envelope_of(self, parts):
        body, content_type = build_multipart(parts)
        return HTTPRequest('POST', 'http://example.com/batch-processor',
            [('Content-Type', content_type)], body)

    def test_duplicate_ids(self):
        first = HTTPRequest('GET', 'http://example.com/first')
        second = HTTPRequest('GET', 'http://example.com/second')
        request = self.envelope_of([
            encode_part(first, '1', REQUEST_TYPE),
            encode_part(second, '1', REQUEST_TYPE),
        ])

        # The part parsed last wins.
        self.assertEqual(envelope.parse_request(request), {'1': second})

    def test_missing_id(self):
        part = HTTPPartMessage(REQUEST_TYPE, [('Content-Transfer-Encoding', 'binary')],
            HTTPRequest('GET', '/').as_bytes())
        request = self.envelope_of([encode_part(HTTPRequest('GET', '/ok'), '1', REQUEST_TYPE), part])

        try:
            envelope.parse_request(request)
        except MalformedPartError as exc:
            self.assertEqual(exc.request_id, None)
        else:
            self.fail('Parsed a part with no request ID')

    def test_bad_subrequest(self):
        part = HTTPPartMessage(REQUEST_TYPE, [(ID_FIELD, '7')], b'not an HTTP request')
        request = self.envelope_of([part])

        try:
            envelope.parse_request(request)
        except MalformedPartError as exc:
            self.assertEqual(exc.request_id, '7')
            self.assertTrue(isinstance(exc.__cause__, BadRequestError))
        else:
            self.fail('Parsed a part with a bad subrequest')

    def test_bad_subresponse(self):
        part = HTTPPartMessage(RESPONSE_TYPE, [(ID_FIELD, '1')], b'OK then')
        body, content_type = build_multipart([part])
        response = HTTPResponse(207, 'Multi-Status', [('Content-Type', content_type)], body)
        self.assertRaises(MalformedPartError, envelope.parse_response, response)

    def test_undecodable_id(self):
        response = HTTPResponse(207, 'Multi-Status',
            [('Content-Type', 'multipart/parallel; boundary="foomfoomfoom"')],
            b"--foomfoomfoom\r\n"
            b"Content-Type: message/http-response\r\n"
            b"Multipart-Request-ID: \xff\xfe\r\n"
            b"\r\n"
            b"200 OK\r\n"
            b"\r\n"
            b"--foomfoomfoom--\r\n")
        self.assertRaises(MalformedPartError, envelope.parse_response, response)

    def test_non_ascii_status(self):
        part = HTTPPartMessage(RESPONSE_TYPE, [(ID_FIELD, '1')], b'HTTP/1.1 \xb2 OK\r\n\r\n')
        body, content_type = build_multipart([part])
        response = HTTPResponse(207, 'Multi-Status', [('Content-Type', content_type)], body)

        try:
            envelope.parse_response(response)
        except MalformedPartError as exc:
            self.assertEqual(exc.request_id, '1')
            self.assertTrue(isinstance(exc.__cause__, BadResponseError))
        else:
            self.fail('Parsed a subresponse with a non-ASCII status code')

    def test_not_multipart(self):
        request = HTTPRequest('POST', '/batch-processor', [('Content-Type', 'text/plain')], b'hi')
        self.assertRaises(EnvelopeFormatError, envelope.parse_request, request)

        request = HTTPRequest('POST', '/batch-processor', [], b'hi')
        self.assertRaises(EnvelopeFormatError, envelope.parse_request, request)

        request = HTTPRequest('POST', '/batch-processor',
            [('Content-Type', 'multipart/parallel')], b'hi')
        self.assertRaises(EnvelopeFormatError, envelope.parse_request, request)

    def test_parse_errors(self):
        for cls in (EnvelopeFormatError, MalformedPartError):
            self.assertTrue(issubclass(cls, ParseError))
            self.assertFalse(issubclass(cls, BuildError))


class TestEnvelopeCodec(unittest.TestCase):

    def test_tmp_dir(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            codec = EnvelopeCodec(MultipartParser(tmp_dir=tmp_dir, spool_size=64))
            responses = utils.sample_responses()
            self.assertEqual(codec.parse_response(codec.create_response(responses)), responses)

            requests = utils.sample_requests()
            request = codec.create_request('http://example.com/batch-processor', requests)
            self.assertEqual(codec.parse_request(request), requests)

    def test_default_parser(self):
        codec = EnvelopeCodec()
        self.assertTrue(isinstance(codec.parser, MultipartParser))
        self.assertEqual(codec.parser.tmp_dir, None)

        parser = MultipartParser()
        self.assertTrue(EnvelopeCodec(parser).parser is parser)


if __name__ == '__main__':
    utils.log()
    unittest.main()
