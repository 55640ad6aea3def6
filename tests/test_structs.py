########################################################################
# File name: test_structs.py
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

import wsxmpp.structs as structs


class TestJID(unittest.TestCase):
    def test_init_full(self):
        j = structs.JID("foo", "example.com", "bar")
        self.assertEqual("foo", j.localpart)
        self.assertEqual("example.com", j.domain)
        self.assertEqual("bar", j.resource)

    def test_init_normalizes_none_localpart(self):
        j = structs.JID(None, "example.com", None)
        self.assertEqual("", j.localpart)
        self.assertIsNone(j.resource)

    def test_fromstr_full(self):
        j = structs.JID.fromstr("_vt@xmpp.ru/ololo")
        self.assertEqual(structs.JID("_vt", "xmpp.ru", "ololo"), j)

    def test_fromstr_domain(self):
        j = structs.JID.fromstr("icq.jabber.ru")
        self.assertEqual(structs.JID(None, "icq.jabber.ru", None), j)
        self.assertTrue(j.is_domain)
        self.assertTrue(j.is_bare)

    def test_fromstr_bare(self):
        j = structs.JID.fromstr("vasya@icq.org")
        self.assertEqual(structs.JID("vasya", "icq.org", None), j)
        self.assertTrue(j.is_bare)
        self.assertFalse(j.is_domain)

    def test_fromstr_domain_with_resource(self):
        j = structs.JID.fromstr("icq.org/registered")
        self.assertEqual(structs.JID(None, "icq.org", "registered"), j)
        self.assertFalse(j.is_bare)
        self.assertFalse(j.is_domain)

    def test_fromstr_resource_may_contain_at_and_slash(self):
        j = structs.JID.fromstr("vasya@icq.org/a@b/c")
        self.assertEqual("a@b/c", j.resource)

    def test_str_roundtrip(self):
        for s in ["_vt@xmpp.ru/ololo",
                  "icq.jabber.ru",
                  "vasya@icq.org",
                  "icq.org/registered"]:
            self.assertEqual(s, str(structs.JID.fromstr(s)))

    def test_reject_empty_domain(self):
        with self.assertRaises(ValueError):
            structs.JID.fromstr("vasya@")
        with self.assertRaises(ValueError):
            structs.JID.fromstr("/resource")
        with self.assertRaises(ValueError):
            structs.JID("foo", "", None)

    def test_reject_empty_localpart(self):
        with self.assertRaises(ValueError):
            structs.JID.fromstr("@icq.org")

    def test_reject_empty_resource(self):
        with self.assertRaises(ValueError):
            structs.JID.fromstr("vasya@icq.org/")

    def test_reject_long_parts(self):
        with self.assertRaises(ValueError):
            structs.JID("x" * 1024, "icq.org", None)
        with self.assertRaises(ValueError):
            structs.JID(None, "icq.org", "x" * 1024)
        # the limit is in bytes, not in characters
        with self.assertRaises(ValueError):
            structs.JID("ä" * 512, "icq.org", None)
        structs.JID("x" * 1023, "icq.org", None)

    def test_reject_invalid_domain(self):
        with self.assertRaises(ValueError):
            structs.JID(None, "foo@bar", None)
        with self.assertRaises(ValueError):
            structs.JID(None, "foo/bar", None)

    def test_bare(self):
        j = structs.JID.fromstr("vasya@icq.org/resource1")
        self.assertEqual(structs.JID.fromstr("vasya@icq.org"), j.bare())

    def test_replace(self):
        j = structs.JID.fromstr("vasya@icq.org/resource1")
        self.assertEqual(
            structs.JID.fromstr("vasya@icq.org/other"),
            j.replace(resource="other"),
        )

    def test_replace_rejects_unknown_keyword(self):
        j = structs.JID.fromstr("vasya@icq.org")
        with self.assertRaisesRegex(TypeError, "unexpected keyword"):
            j.replace(foo="bar")

    def test_replace_validates(self):
        j = structs.JID.fromstr("vasya@icq.org")
        with self.assertRaises(ValueError):
            j.replace(domain="")

    def test_hashable(self):
        self.assertEqual(
            1,
            len({structs.JID.fromstr("vasya@icq.org"),
                 structs.JID("vasya", "icq.org", None)})
        )

    def test_immutable(self):
        j = structs.JID.fromstr("vasya@icq.org")
        with self.assertRaises(AttributeError):
            j.localpart = "foo"


class TestIQType(unittest.TestCase):
    def test_is_request(self):
        self.assertTrue(structs.IQType.GET.is_request)
        self.assertTrue(structs.IQType.SET.is_request)
        self.assertFalse(structs.IQType.RESULT.is_request)
        self.assertFalse(structs.IQType.ERROR.is_request)

    def test_is_response(self):
        self.assertFalse(structs.IQType.GET.is_response)
        self.assertFalse(structs.IQType.SET.is_response)
        self.assertTrue(structs.IQType.RESULT.is_response)
        self.assertTrue(structs.IQType.ERROR.is_response)

    def test_is_error(self):
        for member in structs.IQType:
            self.assertEqual(member == structs.IQType.ERROR,
                             member.is_error)


class TestPresenceType(unittest.TestCase):
    def test_available_is_none(self):
        self.assertIsNone(structs.PresenceType.AVAILABLE.value)
        self.assertEqual(structs.PresenceType.AVAILABLE,
                         structs.PresenceType(None))

    def test_is_error(self):
        self.assertTrue(structs.PresenceType.ERROR.is_error)
        self.assertFalse(structs.PresenceType.AVAILABLE.is_error)


class TestPresenceShow(unittest.TestCase):
    def test_none(self):
        self.assertIsNone(structs.PresenceShow.NONE.value)
        self.assertEqual(structs.PresenceShow.AWAY,
                         structs.PresenceShow("away"))
