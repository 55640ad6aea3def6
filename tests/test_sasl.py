########################################################################
# File name: test_sasl.py
# This file is part of: wsxmpp
#
# LICENSE
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Lesser General Public License as
# published by the Free Software Foundation, either version 3 of the
# License, or (at your option) any later version.
#
# This program is distributed in the hope that it will be useful, but
# WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
# Lesser General Public License for more details.
#
# You should have received a copy of the GNU Lesser General Public
# License along with this program.  If not, see
# <http://www.gnu.org/licenses/>.
#
########################################################################
import base64
import hashlib
import hmac
import unittest
import unittest.mock

import aiosasl

import wsxmpp.errors as errors
import wsxmpp.sasl as sasl
import wsxmpp.structs as structs


TEST_JID = structs.JID.fromstr("user@example.test/r1")


class Testselect(unittest.TestCase):
    def test_picks_first_supported_in_server_order(self):
        negotiator = sasl.select(
            ["DIGEST-MD5", "PLAIN"],
            TEST_JID,
            "pass",
            mechanism_classes=[aiosasl.PLAIN],
        )
        self.assertEqual("PLAIN", negotiator.mechanism)
        self.assertFalse(negotiator.done)

    def test_server_order_wins_over_local_order(self):
        negotiator = sasl.select(
            ["PLAIN", "SCRAM-SHA-1"],
            TEST_JID,
            "pass",
        )
        self.assertEqual("PLAIN", negotiator.mechanism)

    def test_default_mechanisms_include_scram(self):
        negotiator = sasl.select(
            ["SCRAM-SHA-1"],
            TEST_JID,
            "pass",
        )
        self.assertEqual("SCRAM-SHA-1", negotiator.mechanism)

    def test_unsupported(self):
        with self.assertRaises(errors.UnsupportedMechanismError) as ctx:
            sasl.select(["GSSAPI"], TEST_JID, "pass")
        self.assertSequenceEqual(["GSSAPI"], ctx.exception.offered)
        self.assertEqual(
            "supported sasl mechanism not available (offered: GSSAPI)",
            str(ctx.exception),
        )

    def test_nothing_offered(self):
        with self.assertRaises(errors.UnsupportedMechanismError):
            sasl.select([], TEST_JID, "pass")

    def test_asks_mechanism_classes_per_name(self):
        cls = unittest.mock.Mock()
        cls.any_supported.return_value = None

        with self.assertRaises(errors.UnsupportedMechanismError):
            sasl.select(["A", "B"], TEST_JID, "pass",
                        mechanism_classes=[cls])

        self.assertSequenceEqual(
            [
                unittest.mock.call.any_supported(["A"]),
                unittest.mock.call.any_supported(["B"]),
            ],
            cls.mock_calls,
        )


class TestSASLNegotiatorPLAIN(unittest.TestCase):
    def setUp(self):
        self.negotiator = sasl.select(
            ["PLAIN"],
            TEST_JID,
            "pass",
            mechanism_classes=[aiosasl.PLAIN],
        )

    def test_initiate(self):
        self.assertEqual(b"\0user\0pass", self.negotiator.initiate())
        self.assertFalse(self.negotiator.done)

    def test_success(self):
        self.negotiator.initiate()
        self.negotiator.success(None)
        self.assertTrue(self.negotiator.done)

    def test_success_twice_fails(self):
        self.negotiator.initiate()
        self.negotiator.success(None)
        with self.assertRaises(RuntimeError):
            self.negotiator.success(None)

    def test_challenge_is_rejected(self):
        self.negotiator.initiate()
        with self.assertRaises(errors.AuthenticationFailure):
            self.negotiator.next_challenge(b"foo")
        self.assertTrue(self.negotiator.done)

    def test_failure(self):
        self.negotiator.initiate()
        exc = self.negotiator.failure("not-authorized", "wrong password")
        self.assertIsInstance(exc, errors.AuthenticationFailure)
        self.assertEqual("not-authorized", exc.condition)
        self.assertEqual("wrong password", exc.text)
        self.assertTrue(self.negotiator.done)

    def test_failure_is_idempotent(self):
        self.negotiator.initiate()
        self.negotiator.failure("not-authorized")
        self.negotiator.failure("not-authorized")

    def test_repr(self):
        self.assertIn("PLAIN", repr(self.negotiator))


class TestSASLNegotiatorSCRAM(unittest.TestCase):
    SALT = b"QSXCR+Q6sek8bf92"
    ITERATIONS = 4096
    PASSWORD = "pencil"

    def setUp(self):
        self.negotiator = sasl.select(
            ["SCRAM-SHA-1"],
            structs.JID.fromstr("user@example.com"),
            self.PASSWORD,
            mechanism_classes=[aiosasl.SCRAM],
        )

    def _server_first(self, client_first):
        client_first_bare = client_first.split(b",", 2)[2]
        attrs = dict(
            part.split(b"=", 1)
            for part in client_first_bare.split(b",")
        )
        return client_first_bare, (
            b"r=" + attrs[b"r"] + b"3rfcNHYJY1ZVvWVs7j" +
            b",s=" + base64.b64encode(self.SALT) +
            b",i=" + str(self.ITERATIONS).encode("ascii")
        )

    def _server_signature(self, client_first_bare, server_first,
                          client_final):
        without_proof = client_final.rsplit(b",p=", 1)[0]
        auth_message = b",".join([
            client_first_bare,
            server_first,
            without_proof,
        ])
        salted = hashlib.pbkdf2_hmac(
            "sha1",
            self.PASSWORD.encode("utf-8"),
            self.SALT,
            self.ITERATIONS,
        )
        server_key = hmac.new(salted, b"Server Key", "sha1").digest()
        return base64.b64encode(
            hmac.new(server_key, auth_message, "sha1").digest()
        )

    def _exchange(self):
        client_first = self.negotiator.initiate()
        self.assertTrue(client_first.startswith(b"n,,n=user,r="))
        client_first_bare, server_first = self._server_first(client_first)
        client_final = self.negotiator.next_challenge(server_first)
        self.assertTrue(client_final.startswith(b"c=biws,r="))
        self.assertIn(b",p=", client_final)
        return client_first_bare, server_first, client_final

    def test_final_data_in_success(self):
        client_first_bare, server_first, client_final = self._exchange()
        self.negotiator.success(b"v=" + self._server_signature(
            client_first_bare,
            server_first,
            client_final,
        ))
        self.assertTrue(self.negotiator.done)

    def test_wrong_server_signature(self):
        self._exchange()
        with self.assertRaises(errors.AuthenticationFailure):
            self.negotiator.success(b"v=AAAAAAAAAAAAAAAAAAAAAAAAAAA=")
        self.assertTrue(self.negotiator.done)

    def test_success_without_verifier(self):
        self._exchange()
        with self.assertRaises(errors.AuthenticationFailure):
            self.negotiator.success(b"x=1")
        self.assertTrue(self.negotiator.done)

    def test_challenge_with_mandatory_extension(self):
        self.negotiator.initiate()
        with self.assertRaises(errors.AuthenticationFailure):
            self.negotiator.next_challenge(b"m=ext,r=abc,s=QUJD,i=4096")
        self.assertTrue(self.negotiator.done)


class TestSASLNegotiatorMechanismErrors(unittest.TestCase):
    def _negotiator(self, exc):
        mechanism = unittest.mock.Mock()

        async def authenticate(sm, token):
            await sm.initiate("X-TEST", b"")
            raise exc

        mechanism.authenticate.side_effect = authenticate
        return sasl.SASLNegotiator("X-TEST", mechanism, "X-TEST")

    def test_arbitrary_exception_becomes_authentication_failure(self):
        negotiator = self._negotiator(KeyError(b"v"))
        negotiator.initiate()
        with self.assertRaises(errors.AuthenticationFailure) as ctx:
            negotiator.next_challenge(b"foo")
        self.assertIsInstance(ctx.exception.__cause__, KeyError)
        self.assertTrue(negotiator.done)

    def test_exception_without_text(self):
        negotiator = self._negotiator(Exception())
        negotiator.initiate()
        with self.assertRaises(errors.AuthenticationFailure) as ctx:
            negotiator.success(None)
        self.assertIn("Exception", str(ctx.exception))


class TestSASLXMPPInterface(unittest.TestCase):
    def _drive(self, coro, reply):
        request = coro.send(None)
        try:
            coro.send(reply)
        except StopIteration as exc:
            return request, exc.value
        self.fail("coroutine did not finish")

    def test_initiate_yields_auth_request(self):
        intf = sasl.SASLXMPPInterface()
        request, result = self._drive(
            intf.initiate("PLAIN", b"foo"),
            ("success", None),
        )
        self.assertEqual(("auth", "PLAIN", b"foo"), request)
        self.assertEqual(("success", None), result)

    def test_respond_yields_response_request(self):
        intf = sasl.SASLXMPPInterface()
        request, result = self._drive(
            intf.respond(b"bar"),
            ("challenge", b"baz"),
        )
        self.assertEqual(("response", b"bar"), request)
        self.assertEqual(("challenge", b"baz"), result)

    def test_failure_raises_sasl_failure(self):
        intf = sasl.SASLXMPPInterface()
        coro = intf.initiate("PLAIN", b"foo")
        coro.send(None)
        with self.assertRaises(aiosasl.SASLFailure) as ctx:
            coro.send(("failure", ("not-authorized", "nope")))
        self.assertEqual("not-authorized", ctx.exception.opaque_error)
