#! /usr/bin/env python
"""
Copyright 2015 BlazeMeter Inc.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

   http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""
import logging
import os
import platform
import signal
import sys
import tempfile
import traceback
from logging import Formatter
from optparse import OptionParser

from colorlog import ColoredFormatter

from avdlaunch import ManualShutdown, RCProvider, AvdLaunchException, VERSION
from avdlaunch import AvdConfigError, AvdInternalException, NoAvailablePortError, ToolError
from avdlaunch.config import load_configuration, ANDROID
from avdlaunch.emulator import EmulatorManager
from avdlaunch.utils import get_stacktrace, is_int


class CLI(object):
    """
    Command-line front end for EmulatorManager

    :param options: OptionParser parsed parameters
    """
    console_handler = logging.StreamHandler(sys.stdout)

    COMMANDS = ("list", "best", "started", "port", "start")

    def __init__(self, options, stdout=None):
        self.options = options
        self.stdout = stdout or sys.stdout
        self.setup_logging(options)
        self.log = logging.getLogger('')
        self.log.debug("avdlaunch v%s", VERSION)
        self.log.debug("Command-line options: %s", self.options)
        self.log.debug("Python: %s %s", platform.python_implementation(), platform.python_version())
        self.log.debug("OS: %s", platform.uname())
        self.exit_code = 0
        self.config = None
        self.manager = None

    @staticmethod
    def setup_logging(options):
        """
        Setting up console and file logging, colored if possible

        :param options: OptionParser parsed options
        """
        colors = {
            'WARNING': 'yellow',
            'ERROR': 'red',
            'CRITICAL': 'bold_red',
        }
        fmt_file = Formatter("[%(asctime)s %(levelname)s %(name)s] %(message)s")
        if sys.stdout and sys.stdout.isatty():
            fmt_verbose = ColoredFormatter("%(log_color)s[%(asctime)s %(levelname)s %(name)s] %(message)s",
                                           log_colors=colors)
            fmt_regular = ColoredFormatter("%(log_color)s%(asctime)s %(levelname)s: %(message)s",
                                           "%H:%M:%S", log_colors=colors)
        else:
            fmt_verbose = Formatter("[%(asctime)s %(levelname)s %(name)s] %(message)s")
            fmt_regular = Formatter("%(asctime)s %(levelname)s: %(message)s", "%H:%M:%S")

        logger = logging.getLogger('')
        logger.setLevel(logging.DEBUG)

        # log everything to file
        if options.log is None:
            tf = tempfile.NamedTemporaryFile(prefix="avdlaunch_", suffix=".log", delete=False)
            tf.close()
            os.chmod(tf.name, 0o644)
            options.log = tf.name

        if options.log:
            file_handler = logging.FileHandler(options.log, encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(fmt_file)
            logger.addHandler(file_handler)

        # log something to console
        if options.verbose:
            CLI.console_handler.setLevel(logging.DEBUG)
            CLI.console_handler.setFormatter(fmt_verbose)
        elif options.quiet:
            CLI.console_handler.setLevel(logging.WARNING)
            CLI.console_handler.setFormatter(fmt_regular)
        else:
            CLI.console_handler.setLevel(logging.INFO)
            CLI.console_handler.setFormatter(fmt_regular)

        logger.addHandler(CLI.console_handler)

    def close_log(self):
        """
        Close log handlers
        :return:
        """
        if self.options.log:
            for handler in self.log.handlers[:]:
                if issubclass(handler.__class__, logging.FileHandler):
                    self.log.debug("Closing log handler: %s", handler.baseFilename)
                    handler.close()
                    self.log.handlers.remove(handler)

    def perform(self, args):
        """
        Run the command

        :type args: list[str]
        :return: integer exit code
        """
        try:
            if not args or args[0] not in self.COMMANDS:
                raise AvdConfigError("Command must be one of: %s" % ", ".join(self.COMMANDS))

            self.config = load_configuration(self.options.config or [], self.options.option,
                                             not self.options.no_system_configs)
            self.log.debug("Effective config:\n%s", self.config.dump())
            if self.manager is None:
                self.manager = EmulatorManager(self.log, self.config.get(ANDROID))

            command, params = args[0], args[1:]
            getattr(self, "_cmd_" + command)(params)
        except BaseException as exc:
            self.handle_exception(exc)

        self.log.debug("Done performing with code: %s", self.exit_code)
        self.close_log()
        return self.exit_code

    def _cmd_list(self, params):
        del params
        for image in self.manager.list_images():
            self._print("%s\t%s\t%s" % (image.name, image.target or "", image.abi or ""))

    def _cmd_best(self, params):
        image = self.manager.best_image(self._get_api_level(params))
        if image is None:
            self.log.warning("No emulator images found")
            self.exit_code = 1
        else:
            self._print(image.name)

    def _cmd_started(self, params):
        del params
        for emulator_id in self.manager.list_started():
            self._print(emulator_id)

    def _cmd_port(self, params):
        del params
        self._print(str(self.manager.get_available_port()))

    def _cmd_start(self, params):
        timeout = self._get_boot_timeout()
        if params:
            avd = params[0]
        else:
            image = self.manager.best_image(self._get_api_level([]))
            avd = image.name if image else None

        emulator_id = self.manager.start(avd, timeout)
        if emulator_id is None:
            self.log.warning("Emulator %s didn't boot within %s seconds", avd, timeout)
            self.exit_code = 1
        else:
            self._print(emulator_id)

    def _get_boot_timeout(self):
        if self.options.timeout is not None:
            return self.options.timeout

        timeout = self.config.get(ANDROID).get("boot-timeout", -1)
        if timeout is None:
            return -1
        if isinstance(timeout, bool) or not is_int(str(timeout)):
            raise AvdConfigError("Boot timeout must be an integer number of seconds, got: %s" % timeout)
        return int(timeout)

    def _get_api_level(self, params):
        level = params[0] if params else self.config.get(ANDROID).get("target", None)
        if level is None or not is_int(str(level)):
            raise AvdConfigError("Target API level must be an integer, got: %s" % level)
        return int(level)

    def _print(self, line):
        self.stdout.write(line + "\n")
        self.stdout.flush()

    def handle_exception(self, exc):
        log_level = {'info': logging.DEBUG, 'default': logging.DEBUG}
        if not self.exit_code:  # only fist exception goes to the screen
            log_level['info'] = logging.WARNING
            log_level['default'] = logging.ERROR
            if isinstance(exc, RCProvider):
                self.exit_code = exc.get_rc()
            else:
                self.exit_code = 1

        if isinstance(exc, KeyboardInterrupt):
            self.__handle_keyboard_interrupt(exc, log_level)
            log_level['default'] = logging.DEBUG
        elif isinstance(exc, AvdLaunchException):
            self.__handle_launch_exception(exc, log_level['default'])
            log_level['default'] = logging.DEBUG

        self.log.log(log_level['default'], "%s: %s\n%s", type(exc).__name__, exc, get_stacktrace(exc))

    def __handle_keyboard_interrupt(self, exc, log_level):
        if isinstance(exc, ManualShutdown):
            self.log.log(log_level['info'], "Interrupted by user")
        else:
            self.log.log(log_level['info'], "Keyboard interrupt")

    def __handle_launch_exception(self, exc, log_level):
        if isinstance(exc, AvdConfigError):
            self.log.log(log_level, "Config Error: %s", exc)
        elif isinstance(exc, AvdInternalException):
            self.log.log(log_level, "Internal Error: %s", exc)
        elif isinstance(exc, NoAvailablePortError):
            self.log.log(log_level, "Port Error: %s", exc)
        elif isinstance(exc, ToolError):
            self.log.log(log_level, "Child Process Error: %s", exc)
            if exc.diagnostics is not None:
                for line in exc.diagnostics:
                    self.log.log(log_level, line)
        else:
            self.log.log(log_level, "Generic Error: %s", exc)


def get_option_parser():
    usage = "Usage: avdlaunch [options] list|best <api-level>|started|port|start [avd]"
    dsc = "avdlaunch v%s, Android emulator discovery and launching tool" % VERSION
    parser = OptionParser(usage=usage, description=dsc, prog="avdlaunch")
    parser.add_option('-c', '--config', action='append',
                      help="Additional config file, YAML or JSON")
    parser.add_option('-l', '--log', action='store', default=None,
                      help="Log file location")
    parser.add_option('-o', '--option', action='append',
                      help="Override option in config, like android.boot-timeout=120")
    parser.add_option('-t', '--timeout', action='store', type='int', default=None,
                      help="Seconds to wait for emulator boot, negative means forever")
    parser.add_option('-q', '--quiet', action='store_true',
                      help="Only errors and warnings printed to console")
    parser.add_option('-v', '--verbose', action='store_true',
                      help="Prints all logging messages to console")
    parser.add_option('-n', '--no-system-configs', action='store_true',
                      help="Skip user config file")
    return parser


def signal_handler(sig, frame):
    """
    required for non-tty python runs to interrupt
    :param frame:
    :param sig:
    """
    del sig, frame
    raise ManualShutdown()


def main():
    """
    This function is used as entrypoint by setuptools
    """
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    parser = get_option_parser()
    parsed_options, parsed_args = parser.parse_args()

    executor = CLI(parsed_options)

    try:
        code = executor.perform(parsed_args)
    except BaseException as exc_top:
        logging.error("%s: %s", type(exc_top).__name__, exc_top)
        logging.debug("Exception: %s", traceback.format_exc())
        code = 1

    sys.exit(code)


if __name__ == "__main__":
    main()
