""" unit test """
import logging
import os
from io import StringIO
from logging import Handler
from unittest.case import TestCase

from avdlaunch.cli import CLI
from avdlaunch.utils import run_once

TestCase.shortDescription = lambda self: None  # suppress nose habit to show docstring instead of method name

ROOT_LOGGER = logging.getLogger("")

RESOURCES_DIR = os.path.join(os.path.dirname(__file__), 'resources') + os.path.sep


@run_once
def setup_test_logging():
    """ set up test logging for convenience in IDE """
    if not ROOT_LOGGER.handlers:
        CLI.log = ''  # means no log file will be created
        CLI.verbose = True
        CLI.quiet = False
        CLI.setup_logging(CLI)
    else:
        ROOT_LOGGER.debug("Already set up logging")


setup_test_logging()
ROOT_LOGGER.info("Bootstrapped test")


class AvdTestCase(TestCase):
    def setUp(self):
        self.captured_logger = None
        self.log_recorder = None
        self.func_args = []
        self.func_results = None
        self.log = ROOT_LOGGER

    def func_mock(self, *args, **kwargs):
        self.func_args.append({'args': args, 'kargs': kwargs})
        if isinstance(self.func_results, list):
            result = self.func_results.pop(0)
        else:
            result = self.func_results

        if isinstance(result, BaseException):
            raise result
        return result

    def sniff_log(self, log=ROOT_LOGGER):
        if not self.captured_logger:
            self.log_recorder = RecordingHandler()
            self.captured_logger = log
            self.captured_logger.addHandler(self.log_recorder)

    def tearDown(self):
        if self.captured_logger:
            self.captured_logger.removeHandler(self.log_recorder)
            self.log_recorder.close()


class RecordingHandler(Handler):
    def __init__(self):
        super(RecordingHandler, self).__init__()
        self.info_buff = StringIO()
        self.err_buff = StringIO()
        self.debug_buff = StringIO()
        self.warn_buff = StringIO()

    def emit(self, record):
        """

        :type record: logging.LogRecord
        :return:
        """
        if record.levelno == logging.INFO:
            self.write_log(self.info_buff, record.msg, record.args)
        elif record.levelno == logging.ERROR:
            self.write_log(self.err_buff, record.msg, record.args)
        elif record.levelno == logging.WARNING:
            self.write_log(self.warn_buff, record.msg, record.args)
        elif record.levelno == logging.DEBUG:
            self.write_log(self.debug_buff, record.msg, record.args)

    def write_log(self, buff, str_template, args):
        str_template += "\n"
        if args:
            buff.write(str_template % args)
        else:
            buff.write(str_template)
