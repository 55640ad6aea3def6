########################################################################
# File name: xmltestutils.py
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

from .utils import etree


def element_path(el):
    segments = []
    parent = el.getparent()
    while parent is not None:
        similar = list(parent.iterchildren(el.tag))
        segments.insert(0, "{}[{}]".format(el.tag, similar.index(el)))
        el = parent
        parent = el.getparent()
    return "/" + "/".join([el.tag] + segments)


def _as_element(obj):
    if isinstance(obj, str):
        return etree.fromstring(obj.encode("utf-8"))
    return obj


class XMLTestCase(unittest.TestCase):
    """
    Test case with assertions comparing :mod:`lxml` trees by tag, text,
    attributes and children. Children are compared grouped by tag, so the
    relative order of differently named siblings does not matter.

    Either side may also be given as serialised XML.
    """

    def assertAttributesEqual(self, el1, el2, ignore_surplus_attr=False):
        attrs1 = dict(el1.attrib)
        attrs2 = dict(el2.attrib)
        if ignore_surplus_attr:
            attrs2 = {
                key: value
                for key, value in attrs2.items()
                if key in attrs1
            }
        self.assertDictEqual(
            attrs1,
            attrs2,
            "attribute mismatch at {}".format(element_path(el2))
        )

    def assertTextContentEqual(self, el1, el2):
        def text_of(el):
            return "".join(
                [el.text or ""] + [child.tail or "" for child in el]
            ).strip()

        self.assertEqual(
            text_of(el1),
            text_of(el2),
            "text mismatch at {}".format(element_path(el2))
        )

    def assertChildrenEqual(self, el1, el2,
                            ignore_surplus_attr=False,
                            ignore_surplus_children=False):
        def group(el):
            result = {}
            for child in el:
                if not isinstance(child.tag, str):
                    continue
                result.setdefault(child.tag, []).append(child)
            return result

        children1 = group(el1)
        children2 = group(el2)

        if ignore_surplus_children:
            missing = set(children1) - set(children2)
            self.assertFalse(
                missing,
                "missing children {} at {}".format(
                    sorted(missing),
                    element_path(el2),
                )
            )
        else:
            self.assertSetEqual(
                set(children1),
                set(children2),
                "child tag mismatch at {}".format(element_path(el2))
            )

        for tag, group1 in children1.items():
            group2 = children2[tag]
            if ignore_surplus_children:
                self.assertLessEqual(len(group1), len(group2))
            else:
                self.assertEqual(
                    len(group1),
                    len(group2),
                    "number of {} children differs at {}".format(
                        tag,
                        element_path(el2),
                    )
                )
            for child1, child2 in zip(group1, group2):
                self.assertSubtreeEqual(
                    child1, child2,
                    ignore_surplus_attr=ignore_surplus_attr,
                    ignore_surplus_children=ignore_surplus_children,
                )

    def assertSubtreeEqual(self, tree1, tree2,
                           ignore_surplus_attr=False,
                           ignore_surplus_children=False):
        tree1 = _as_element(tree1)
        tree2 = _as_element(tree2)
        self.assertEqual(
            tree1.tag,
            tree2.tag,
            "tag mismatch at {}".format(element_path(tree2))
        )
        self.assertTextContentEqual(tree1, tree2)
        self.assertAttributesEqual(
            tree1, tree2,
            ignore_surplus_attr=ignore_surplus_attr,
        )
        self.assertChildrenEqual(
            tree1, tree2,
            ignore_surplus_attr=ignore_surplus_attr,
            ignore_surplus_children=ignore_surplus_children,
        )
