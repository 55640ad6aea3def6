########################################################################
# File name: test_stanza.py
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
import unittest

import wsxmpp.errors as errors
import wsxmpp.stanza as stanza
import wsxmpp.structs as structs

from wsxmpp.utils import namespaces, etree, split_tag
from wsxmpp import xmltestutils


TEST_FROM = structs.JID.fromstr("foo@example.test/r1")
TEST_TO = structs.JID.fromstr("bar@example.test/r1")


def parse(text):
    return etree.fromstring(text.encode("utf-8"))


def make_payload():
    return etree.Element(
        "{urn:example:foo}query",
        nsmap={None: "urn:example:foo"},
    )


class TestError(xmltestutils.XMLTestCase):
    def test_defaults(self):
        obj = stanza.Error()
        self.assertEqual(errors.ErrorCondition.UNDEFINED_CONDITION,
                         obj.condition)
        self.assertEqual(structs.ErrorType.CANCEL, obj.type_)
        self.assertIsNone(obj.text)

    def test_to_exception(self):
        obj = stanza.Error(
            condition=errors.ErrorCondition.NOT_AUTHORIZED,
            type_=structs.ErrorType.AUTH,
            text="foo",
        )
        exc = obj.to_exception()
        self.assertIsInstance(exc, errors.XMPPAuthError)
        self.assertEqual(errors.ErrorCondition.NOT_AUTHORIZED,
                         exc.condition)
        self.assertEqual("foo", exc.text)

    def test_from_exception(self):
        obj = stanza.Error.from_exception(errors.XMPPWaitError(
            errors.ErrorCondition.RESOURCE_CONSTRAINT,
            text="busy",
        ))
        self.assertEqual(errors.ErrorCondition.RESOURCE_CONSTRAINT,
                         obj.condition)
        self.assertEqual(structs.ErrorType.WAIT, obj.type_)
        self.assertEqual("busy", obj.text)

    def test_to_element(self):
        obj = stanza.Error(
            condition=errors.ErrorCondition.ITEM_NOT_FOUND,
            type_=structs.ErrorType.CANCEL,
            text="nope",
        )
        self.assertSubtreeEqual(
            "<error xmlns='jabber:client' type='cancel'>"
            "<item-not-found xmlns='{0}'/>"
            "<text xmlns='{0}'>nope</text>"
            "</error>".format(namespaces.stanzas),
            obj.to_element(),
        )

    def test_from_element(self):
        obj = stanza.Error.from_element(parse(
            "<error xmlns='jabber:client' type='modify'>"
            "<bad-request xmlns='{0}'/>"
            "<text xmlns='{0}'>huh</text>"
            "<app-specific xmlns='urn:example'/>"
            "</error>".format(namespaces.stanzas)
        ))
        self.assertEqual(errors.ErrorCondition.BAD_REQUEST, obj.condition)
        self.assertEqual(structs.ErrorType.MODIFY, obj.type_)
        self.assertEqual("huh", obj.text)

    def test_from_element_without_condition(self):
        with self.assertRaises(errors.StanzaDecodeError):
            stanza.Error.from_element(parse(
                "<error xmlns='jabber:client' type='cancel'/>"
            ))

    def test_from_element_invalid_type(self):
        with self.assertRaises(errors.StanzaDecodeError):
            stanza.Error.from_element(parse(
                "<error xmlns='jabber:client' type='foo'>"
                "<bad-request xmlns='{}'/></error>".format(namespaces.stanzas)
            ))


class TestIQ(xmltestutils.XMLTestCase):
    def test_init(self):
        payload = make_payload()
        iq = stanza.IQ(structs.IQType.GET, payload=payload, to=TEST_TO)
        self.assertEqual(structs.IQType.GET, iq.type_)
        self.assertIs(payload, iq.payload)
        self.assertEqual(TEST_TO, iq.to)
        self.assertIsNone(iq.from_)
        self.assertIsNone(iq.id_)
        self.assertIsNone(iq.error)

    def test_autoset_id(self):
        iq = stanza.IQ(structs.IQType.GET)
        iq.autoset_id()
        id_ = iq.id_
        self.assertTrue(id_)
        iq.autoset_id()
        self.assertEqual(id_, iq.id_)

    def test_to_element(self):
        iq = stanza.IQ(structs.IQType.SET,
                       payload=make_payload(),
                       from_=TEST_FROM,
                       to=TEST_TO,
                       id_="abc")
        self.assertSubtreeEqual(
            "<iq xmlns='jabber:client' type='set' id='abc' "
            "from='foo@example.test/r1' to='bar@example.test/r1'>"
            "<query xmlns='urn:example:foo'/></iq>",
            iq.to_element(),
        )

    def test_to_element_copies_payload(self):
        payload = make_payload()
        iq = stanza.IQ(structs.IQType.GET, payload=payload, id_="x")
        el = iq.to_element()
        self.assertIsNot(payload, el[0])
        self.assertIsNone(payload.getparent())

    def test_from_element(self):
        iq = stanza.IQ.from_element(parse(
            "<iq xmlns='jabber:client' type='get' id='abc' "
            "from='foo@example.test/r1'>"
            "<query xmlns='urn:example:foo'/></iq>"
        ))
        self.assertEqual(structs.IQType.GET, iq.type_)
        self.assertEqual("abc", iq.id_)
        self.assertEqual(TEST_FROM, iq.from_)
        self.assertIsNone(iq.to)
        self.assertEqual(("urn:example:foo", "query"),
                         split_tag(iq.payload))

    def test_from_element_result_without_payload(self):
        iq = stanza.IQ.from_element(parse(
            "<iq xmlns='jabber:client' type='result' id='abc'/>"
        ))
        self.assertEqual(structs.IQType.RESULT, iq.type_)
        self.assertIsNone(iq.payload)

    def test_from_element_error(self):
        iq = stanza.IQ.from_element(parse(
            "<iq xmlns='jabber:client' type='error' id='abc'>"
            "<error type='cancel'><service-unavailable xmlns='{}'/></error>"
            "</iq>".format(namespaces.stanzas)
        ))
        self.assertEqual(structs.IQType.ERROR, iq.type_)
        self.assertIsNone(iq.payload)
        self.assertEqual(errors.ErrorCondition.SERVICE_UNAVAILABLE,
                         iq.error.condition)

    def test_from_element_requires_id(self):
        with self.assertRaisesRegex(errors.StanzaDecodeError,
                                    "IQ requires ID"):
            stanza.IQ.from_element(parse(
                "<iq xmlns='jabber:client' type='result'/>"
            ))

    def test_from_element_requires_type(self):
        with self.assertRaisesRegex(errors.StanzaDecodeError,
                                    "IQ requires type"):
            stanza.IQ.from_element(parse(
                "<iq xmlns='jabber:client' id='x'/>"
            ))

    def test_from_element_rejects_invalid_type(self):
        with self.assertRaises(errors.StanzaDecodeError):
            stanza.IQ.from_element(parse(
                "<iq xmlns='jabber:client' id='x' type='foo'/>"
            ))

    def test_from_element_rejects_two_payloads(self):
        with self.assertRaisesRegex(errors.StanzaDecodeError,
                                    "more than one payload"):
            stanza.IQ.from_element(parse(
                "<iq xmlns='jabber:client' id='x' type='set'>"
                "<a xmlns='urn:example'/><b xmlns='urn:example'/></iq>"
            ))

    def test_from_element_rejects_request_without_payload(self):
        with self.assertRaises(errors.StanzaDecodeError):
            stanza.IQ.from_element(parse(
                "<iq xmlns='jabber:client' id='x' type='get'/>"
            ))

    def test_from_element_rejects_error_without_error_child(self):
        with self.assertRaises(errors.StanzaDecodeError):
            stanza.IQ.from_element(parse(
                "<iq xmlns='jabber:client' id='x' type='error'/>"
            ))

    def test_from_element_rejects_invalid_address(self):
        with self.assertRaises(errors.StanzaDecodeError):
            stanza.IQ.from_element(parse(
                "<iq xmlns='jabber:client' id='x' type='result' "
                "from='@foo'/>"
            ))

    def test_from_element_rejects_other_stanzas(self):
        with self.assertRaises(errors.StanzaDecodeError):
            stanza.IQ.from_element(parse(
                "<message xmlns='jabber:client'/>"
            ))

    def test_make_reply(self):
        iq = stanza.IQ(structs.IQType.GET, payload=make_payload(),
                       from_=TEST_FROM, to=TEST_TO, id_="abc")
        reply = iq.make_reply(structs.IQType.RESULT)
        self.assertIsInstance(reply, stanza.IQ)
        self.assertEqual(structs.IQType.RESULT, reply.type_)
        self.assertEqual(TEST_TO, reply.from_)
        self.assertEqual(TEST_FROM, reply.to)
        self.assertEqual("abc", reply.id_)
        self.assertIsNone(reply.payload)

    def test_make_reply_requires_request(self):
        iq = stanza.IQ(structs.IQType.RESULT, id_="abc")
        with self.assertRaisesRegex(ValueError, "request IQ"):
            iq.make_reply(structs.IQType.RESULT)

    def test_make_error(self):
        iq = stanza.IQ(structs.IQType.SET, payload=make_payload(),
                       from_=TEST_FROM, to=TEST_TO, id_="abc")
        error = stanza.Error(errors.ErrorCondition.FORBIDDEN,
                             structs.ErrorType.AUTH)
        reply = iq.make_error(error)
        self.assertEqual(structs.IQType.ERROR, reply.type_)
        self.assertIs(error, reply.error)
        self.assertEqual(TEST_TO, reply.from_)
        self.assertEqual(TEST_FROM, reply.to)
        self.assertEqual("abc", reply.id_)

        el = reply.to_element()
        self.assertEqual("error", el.get("type"))
        self.assertIsNotNone(el.find(
            "{{jabber:client}}error/{{{}}}forbidden".format(
                namespaces.stanzas
            )
        ))

    def test_repr(self):
        iq = stanza.IQ(structs.IQType.GET, payload=make_payload(),
                       id_="abc")
        self.assertIn("id=abc", repr(iq))


class TestMessage(xmltestutils.XMLTestCase):
    def test_defaults(self):
        msg = stanza.Message()
        self.assertEqual(structs.MessageType.NORMAL, msg.type_)
        self.assertIsNone(msg.body)
        self.assertSequenceEqual([], msg.extensions)

    def test_from_element(self):
        msg = stanza.Message.from_element(parse(
            "<message xmlns='jabber:client' type='chat' id='m1' "
            "from='foo@example.test/r1'>"
            "<body>hello</body>"
            "<active xmlns='http://jabber.org/protocol/chatstates'/>"
            "</message>"
        ))
        self.assertEqual(structs.MessageType.CHAT, msg.type_)
        self.assertEqual("hello", msg.body)
        self.assertEqual(TEST_FROM, msg.from_)
        self.assertEqual(1, len(msg.extensions))
        self.assertEqual(
            ("http://jabber.org/protocol/chatstates", "active"),
            split_tag(msg.extensions[0]),
        )

    def test_from_element_missing_type_is_normal(self):
        msg = stanza.Message.from_element(parse(
            "<message xmlns='jabber:client'/>"
        ))
        self.assertEqual(structs.MessageType.NORMAL, msg.type_)

    def test_from_element_unknown_type_is_normal(self):
        msg = stanza.Message.from_element(parse(
            "<message xmlns='jabber:client' type='fnord'/>"
        ))
        self.assertEqual(structs.MessageType.NORMAL, msg.type_)

    def test_to_element(self):
        msg = stanza.Message(structs.MessageType.CHAT,
                             body="hi",
                             to=TEST_TO)
        self.assertSubtreeEqual(
            "<message xmlns='jabber:client' type='chat' "
            "to='bar@example.test/r1'><body>hi</body></message>",
            msg.to_element(),
        )

    def test_make_reply(self):
        msg = stanza.Message(structs.MessageType.CHAT, from_=TEST_FROM,
                             to=TEST_TO, id_="m1")
        reply = msg.make_reply()
        self.assertEqual(structs.MessageType.CHAT, reply.type_)
        self.assertEqual(TEST_TO, reply.from_)
        self.assertEqual(TEST_FROM, reply.to)
        self.assertIsNone(reply.id_)


class TestPresence(xmltestutils.XMLTestCase):
    def test_defaults(self):
        pres = stanza.Presence()
        self.assertEqual(structs.PresenceType.AVAILABLE, pres.type_)
        self.assertEqual(structs.PresenceShow.NONE, pres.show)
        self.assertIsNone(pres.status)

    def test_to_element_available(self):
        pres = stanza.Presence(show=structs.PresenceShow.AWAY,
                               status="lunch")
        self.assertSubtreeEqual(
            "<presence xmlns='jabber:client'>"
            "<show>away</show><status>lunch</status></presence>",
            pres.to_element(),
        )

    def test_to_element_with_extension(self):
        ext = etree.Element("{urn:example}foo")
        pres = stanza.Presence(extensions=[ext])
        el = pres.to_element()
        self.assertIsNone(el.get("type"))
        self.assertIsNotNone(el.find("{urn:example}foo"))

    def test_from_element(self):
        pres = stanza.Presence.from_element(parse(
            "<presence xmlns='jabber:client' type='unavailable' "
            "from='foo@example.test/r1'><status>bye</status></presence>"
        ))
        self.assertEqual(structs.PresenceType.UNAVAILABLE, pres.type_)
        self.assertEqual("bye", pres.status)
        self.assertEqual(TEST_FROM, pres.from_)

    def test_from_element_unknown_show(self):
        pres = stanza.Presence.from_element(parse(
            "<presence xmlns='jabber:client'><show>fnord</show></presence>"
        ))
        self.assertEqual(structs.PresenceShow.NONE, pres.show)

    def test_from_element_rejects_invalid_type(self):
        with self.assertRaises(errors.StanzaDecodeError):
            stanza.Presence.from_element(parse(
                "<presence xmlns='jabber:client' type='fnord'/>"
            ))


class Testfrom_element(unittest.TestCase):
    def test_dispatches_by_tag(self):
        self.assertIsInstance(
            stanza.from_element(parse(
                "<iq xmlns='jabber:client' type='result' id='x'/>"
            )),
            stanza.IQ,
        )
        self.assertIsInstance(
            stanza.from_element(parse("<message xmlns='jabber:client'/>")),
            stanza.Message,
        )
        self.assertIsInstance(
            stanza.from_element(parse("<presence xmlns='jabber:client'/>")),
            stanza.Presence,
        )

    def test_rejects_other_elements(self):
        with self.assertRaises(errors.StanzaDecodeError):
            stanza.from_element(parse("<foo xmlns='jabber:client'/>"))
