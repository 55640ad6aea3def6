########################################################################
# File name: test_model.py
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

import wsxmpp.disco.model as disco_model
import wsxmpp.structs as structs

from wsxmpp.utils import namespaces
from wsxmpp import xmltestutils


class TestIdentity(xmltestutils.XMLTestCase):
    def test_defaults(self):
        identity = disco_model.Identity()
        self.assertEqual("client", identity.category)
        self.assertEqual("pc", identity.type_)
        self.assertIsNone(identity.name)
        self.assertIsNone(identity.lang)

    def test_to_element(self):
        identity = disco_model.Identity("client", "web", "wsxmpp", "en")
        self.assertSubtreeEqual(
            "<identity xmlns='{}' category='client' type='web' "
            "name='wsxmpp' xml:lang='en'/>".format(namespaces.xep0030_info),
            identity.to_element(),
        )


class TestItem(xmltestutils.XMLTestCase):
    def test_to_element(self):
        item = disco_model.Item(
            structs.JID.fromstr("pubsub.icq.org"),
            node="news",
            name="News",
        )
        self.assertSubtreeEqual(
            "<item xmlns='{}' jid='pubsub.icq.org' node='news' "
            "name='News'/>".format(namespaces.xep0030_items),
            item.to_element(),
        )

    def test_to_element_minimal(self):
        item = disco_model.Item(structs.JID.fromstr("icq.org"))
        self.assertSubtreeEqual(
            "<item xmlns='{}' jid='icq.org'/>".format(
                namespaces.xep0030_items
            ),
            item.to_element(),
        )


class Testhash_query(unittest.TestCase):
    def test_xep0115_simple_example(self):
        self.assertEqual(
            "QgayPKawpkPSDYmwT/WM94uAlu0=",
            disco_model.hash_query(
                [disco_model.Identity("client", "pc", "Exodus 0.9.1")],
                [
                    "http://jabber.org/protocol/caps",
                    "http://jabber.org/protocol/disco#info",
                    "http://jabber.org/protocol/disco#items",
                    "http://jabber.org/protocol/muc",
                ],
            )
        )

    def test_order_independent(self):
        identities = [disco_model.Identity("client", "pc", "x")]
        self.assertEqual(
            disco_model.hash_query(identities, ["a", "b", "c"]),
            disco_model.hash_query(identities, ["c", "a", "b"]),
        )

    def test_reject_duplicate_features(self):
        with self.assertRaises(ValueError):
            disco_model.build_features_string(["a", "a"])

    def test_reject_duplicate_identities(self):
        with self.assertRaises(ValueError):
            disco_model.build_identities_string([
                disco_model.Identity(),
                disco_model.Identity(),
            ])

    def test_features_string(self):
        self.assertEqual(
            b"a<b<",
            disco_model.build_features_string(["b", "a"]),
        )

    def test_identities_string_escapes(self):
        self.assertEqual(
            b"client/pc//a&lt;b<",
            disco_model.build_identities_string([
                disco_model.Identity("client", "pc", "a<b"),
            ]),
        )


class TestCapabilities(xmltestutils.XMLTestCase):
    def test_defaults(self):
        caps = disco_model.Capabilities()
        self.assertEqual(disco_model.Identity("client", "pc", "wsxmpp"),
                         caps.identity)
        self.assertEqual(disco_model.DEFAULT_NODE, caps.node)
        self.assertSetEqual(
            {namespaces.xep0030_info, namespaces.xep0030_items},
            set(caps.features),
        )

    def test_features_are_a_frozenset_including_disco(self):
        caps = disco_model.Capabilities(features=["urn:example:a"])
        self.assertIsInstance(caps.features, frozenset)
        self.assertIn("urn:example:a", caps.features)
        self.assertIn(namespaces.xep0030_info, caps.features)
        self.assertIn(namespaces.xep0030_items, caps.features)

    def test_ver_matches_xep0115_example(self):
        caps = disco_model.Capabilities(
            identity=disco_model.Identity("client", "pc", "Exodus 0.9.1"),
            node="http://code.google.com/p/exodus",
            features=[
                "http://jabber.org/protocol/caps",
                "http://jabber.org/protocol/muc",
            ],
        )
        self.assertEqual("QgayPKawpkPSDYmwT/WM94uAlu0=", caps.ver)
        self.assertEqual(
            "http://code.google.com/p/exodus#QgayPKawpkPSDYmwT/WM94uAlu0=",
            caps.caps_node,
        )

    def test_ver_changes_with_features(self):
        self.assertNotEqual(
            disco_model.Capabilities().ver,
            disco_model.Capabilities(features=["urn:example:a"]).ver,
        )

    def test_to_caps_element(self):
        caps = disco_model.Capabilities()
        self.assertSubtreeEqual(
            "<c xmlns='{}' hash='sha-1' node='{}' ver='{}'/>".format(
                namespaces.xep0115_caps,
                disco_model.DEFAULT_NODE,
                caps.ver,
            ),
            caps.to_caps_element(),
        )

    def test_to_info_element(self):
        caps = disco_model.Capabilities(features=["urn:example:a"])
        self.assertSubtreeEqual(
            "<query xmlns='{0}'>"
            "<identity category='client' type='pc' name='wsxmpp'/>"
            "<feature var='{0}'/>"
            "<feature var='{1}'/>"
            "<feature var='urn:example:a'/>"
            "</query>".format(
                namespaces.xep0030_info,
                namespaces.xep0030_items,
            ),
            caps.to_info_element(),
        )

    def test_to_info_element_features_sorted(self):
        caps = disco_model.Capabilities(features=["urn:z", "urn:a"])
        el = caps.to_info_element()
        vars_ = [
            feature.get("var")
            for feature in el.iterfind(
                "{{{}}}feature".format(namespaces.xep0030_info)
            )
        ]
        self.assertSequenceEqual(sorted(vars_), vars_)

    def test_to_info_element_with_node(self):
        caps = disco_model.Capabilities()
        el = caps.to_info_element(caps.caps_node)
        self.assertEqual(caps.caps_node, el.get("node"))
