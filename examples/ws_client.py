########################################################################
# File name: ws_client.py
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
import argparse
import asyncio
import configparser
import getpass
import logging
import logging.config
import os
import os.path
import signal

import wsxmpp
import wsxmpp.xml


def prepare_argparse():
    config_default_path = os.path.join(
        os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config")),
        "wsxmpp_examples.ini")
    if not os.path.exists(config_default_path):
        config_default_path = None

    parser = argparse.ArgumentParser(
        description="Sign in over WebSocket, announce presence and log "
        "everything which arrives."
    )

    parser.add_argument(
        "-c", "--config",
        default=config_default_path,
        type=argparse.FileType("r"),
        help="Configuration file to read",
    )

    # this gives a nicer name in argparse errors
    def jid(s):
        return wsxmpp.JID.fromstr(s)

    parser.add_argument(
        "-j", "--local-jid",
        type=jid,
        help="JID to authenticate with (only required if not in config)"
    )

    parser.add_argument(
        "-u", "--url",
        help="WebSocket URL of the server (only required if not in config)"
    )

    parser.add_argument(
        "-p",
        dest="ask_password",
        action="store_true",
        default=False,
        help="Ask for password on stdio"
    )

    parser.add_argument(
        "-s", "--status",
        default=None,
        help="Status text to announce"
    )

    parser.add_argument(
        "--dump",
        action="store_true",
        default=False,
        help="Print all elements sent and received",
    )

    parser.add_argument(
        "-v",
        help="Increase verbosity (this has no effect if a logging config"
        " file is specified in the config file)",
        default=0,
        dest="verbosity",
        action="count",
    )

    return parser


def configure(args):
    config = configparser.ConfigParser()
    if args.config is not None:
        with args.config:
            config.read_file(args.config)

    if config.has_option("global", "logging"):
        logging.config.fileConfig(
            config.get("global", "logging")
        )
    else:
        logging.basicConfig(
            level={
                0: logging.ERROR,
                1: logging.WARNING,
                2: logging.INFO,
            }.get(args.verbosity, logging.DEBUG)
        )

    jid = args.local_jid
    if jid is None:
        try:
            jid = wsxmpp.JID.fromstr(config.get("global", "local_jid"))
        except (configparser.NoSectionError,
                configparser.NoOptionError):
            jid = wsxmpp.JID.fromstr(input("Account JID> "))

    jid_sect = str(jid)
    if jid_sect not in config:
        jid_sect = "global"

    url = args.url
    if url is None:
        try:
            url = config.get(jid_sect, "url")
        except (configparser.NoSectionError,
                configparser.NoOptionError):
            url = input("WebSocket URL> ")

    if args.ask_password:
        password = getpass.getpass()
    else:
        try:
            password = config.get(jid_sect, "password")
        except (configparser.NoOptionError,
                configparser.NoSectionError):
            logging.error(('When the local JID %s is set, password ' +
                           'must be set as well.') % str(jid))
            raise

    return jid, password, url


async def run(args, jid, password, url):
    client = wsxmpp.Client(jid, password, url)

    def on_element(element, direction):
        print("{}: {}".format(direction.value, wsxmpp.xml.encode(element)))

    def on_message(message):
        print("message from {}: {!r}".format(message.from_, message.body))

    def on_presence(presence):
        print("presence from {}: {} {}".format(
            presence.from_,
            presence.type_.name,
            presence.status or "",
        ))

    if args.dump:
        client.connection.on_element.connect(on_element)
    client.connection.on_message.connect(on_message)
    client.connection.on_presence.connect(on_presence)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, stop_event.set)

    failed_fut = client.connection.on_connection_failed.future()

    async with client:
        print("signed in as {}".format(client.local_jid))
        client.send_presence(status=args.status)

        stop_fut = asyncio.ensure_future(stop_event.wait())
        done, pending = await asyncio.wait(
            [stop_fut, failed_fut],
            return_when=asyncio.FIRST_COMPLETED,
        )
        for fut in pending:
            fut.cancel()

        if failed_fut in done:
            print("connection failed: {}".format(failed_fut.result()))


def main():
    args = prepare_argparse().parse_args()
    jid, password, url = configure(args)
    asyncio.run(run(args, jid, password, url))


if __name__ == "__main__":
    main()
