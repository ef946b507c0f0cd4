"""
Android Virtual Devices: discovery, selection and launching

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
import os
import re
import sys
import time
from collections import namedtuple

from avdlaunch import AvdArgumentError, NoAvailablePortError, ToolError, AdbError
from avdlaunch import android_versions
from avdlaunch.adb import ADB
from avdlaunch.utils import RequiredTool, Environment, BetterDict, shell_exec, get_full_path, LOG

CHECK_BOOTED_INTERVAL = 3  # seconds

FIRST_PORT = 5554
LAST_PORT = 5584

TRANSIENT_ADB_ERRORS = ("not found", "device offline", "device still connecting", "device still authorizing")

SDK_TOOL_DIRS = ("emulator", "platform-tools", os.path.join("cmdline-tools", "latest", "bin"),
                 os.path.join("tools", "bin"))

API_LEVEL_RE = re.compile(r"\(API level (\d+)\)")


def is_transient(exc):
    """
    True when adb failed only because device isn't up yet

    :type exc: AdbError
    """
    text = "\n".join([str(exc)] + (exc.diagnostics or []))
    return any(marker in text for marker in TRANSIENT_ADB_ERRORS)


class ImageRecord(namedtuple("ImageRecord", "name,device,path,target,abi,skin")):
    """
    Single AVD as reported by `avdmanager list avd`
    """
    __slots__ = ()

    def __new__(cls, name, device=None, path=None, target=None, abi=None, skin=None):
        return super(ImageRecord, cls).__new__(cls, name, device, path, target, abi, skin)

    @property
    def api_level(self):
        if not self.target:
            return None

        match = API_LEVEL_RE.search(self.target)
        if match:
            return int(match.group(1))
        return None

    def replace(self, **kwargs):
        return self._replace(**kwargs)


class AvdListParser(object):
    """
    Line cursor over `avdmanager list avd` output.

    Every entry is a fixed sequence of labelled lines, any of which except Name may be absent:
    Name -> Device -> Path -> Target (+ "Based on" continuation) -> Skin.
    A line is consumed by a state only if it carries that state's label.
    """
    AWAIT_NAME = "AwaitName"
    AWAIT_DEVICE = "AwaitDevice"
    AWAIT_PATH = "AwaitPath"
    AWAIT_TARGET = "AwaitTarget"
    AWAIT_SKIN = "AwaitSkin"

    def __init__(self, lines):
        self.lines = [line.replace('\r', '') for line in lines]
        self.pos = 1  # first line is a header
        self.state = self.AWAIT_NAME
        self.fields = {}
        self.records = []

    @staticmethod
    def field(line, label):
        marker = label + ": "
        if not re.search(label + r":\s", line) or marker not in line:
            return None
        return line.split(marker, 1)[1]

    def peek(self):
        if self.pos < len(self.lines):
            return self.lines[self.pos]
        return None

    def parse(self):
        while self.pos < len(self.lines) or self.state != self.AWAIT_NAME:
            line = self.peek()
            if self.state == self.AWAIT_NAME:
                name = self.field(line, "Name")
                self.pos += 1
                if name is not None:
                    self.fields = {"name": name}
                    self.state = self.AWAIT_DEVICE
            elif self.state == self.AWAIT_DEVICE:
                self._consume(line, "Device", "device")
                self.state = self.AWAIT_PATH
            elif self.state == self.AWAIT_PATH:
                self._consume(line, "Path", "path")
                self.state = self.AWAIT_TARGET
            elif self.state == self.AWAIT_TARGET:
                if line is not None and self.field(line, "Target") is not None:
                    self.pos += 1
                    self._read_target(self.field(line, "Target"), self.peek())
                self.state = self.AWAIT_SKIN
            elif self.state == self.AWAIT_SKIN:
                self._consume(line, "Skin", "skin")
                self.records.append(ImageRecord(**self.fields))
                self.state = self.AWAIT_NAME

        return self.records

    def _consume(self, line, label, key):
        if line is None:
            return

        value = self.field(line, label)
        if value is not None:
            self.fields[key] = value
            self.pos += 1

    def _read_target(self, raw_target, continuation):
        self.fields["target"] = raw_target.strip()
        if continuation is None:
            return

        abi = self.field(continuation, "ABI")
        based_on = None
        if re.search(r"Based\son:\s", continuation):
            based_on = re.split(r"Based\son:", continuation, maxsplit=1)[1]
        if abi is None and based_on is None:
            return

        self.pos += 1
        if abi is not None:
            self.fields["abi"] = abi

        if based_on is not None:
            self.fields["target"] = self.normalize_based_on(based_on)

    @staticmethod
    def normalize_based_on(based_on):
        """
        "Android 10.0 (Q) Tag/ABI: google_apis/x86" -> "Android 10.0 (API level 29)"
        """
        target = based_on
        if re.search(r"Tag/ABI:\s", target):
            target = target.split("Tag/ABI:")[0]

        target = target.strip()
        if "(" in target:
            target = target[:target.index("(")].strip()

        api_level = android_versions.version_string_to_api_level(re.sub(r"Android\s+", "", target))
        if api_level:
            target += " (API level %s)" % api_level

        return target


def parse_avd_list(output):
    """
    :type output: str
    :rtype: list[ImageRecord]
    """
    return AvdListParser(output.split('\n')).parse()


def normalize_target(target):
    """
    Add missing OS version to targets like "Android API 29"
    """
    if not target or "Android API" not in target or "API level" in target:
        return target

    match = re.search(r"\d+", target)
    if not match:
        return target

    version = android_versions.get(match.group(0))
    if not version:
        return target

    return "Android %s (API level %s)" % (version.semver, match.group(0))


class AvdManager(RequiredTool):
    TOOL_NAME = "avdmanager"

    def list_avd(self):
        out, _ = self.call([self.resolve(), "list", "avd"])
        return out


class EmulatorTool(RequiredTool):
    TOOL_NAME = "emulator"

    def start(self, avd, port):
        """
        Spawn emulator and forget about it, it will outlive us
        """
        tool_path = self.resolve()
        # emulator can't find its libs unless started from its own dir
        # see https://code.google.com/p/android/issues/detail?id=235461
        emulator_dir = os.path.dirname(tool_path)
        args = [tool_path, "-avd", avd, "-port", str(port)]
        return shell_exec(args, cwd=emulator_dir, stdout=None, stderr=None, stdin=None, env=self.env.get())


class EmulatorManager(object):
    """
    Discovers AVDs and starts them, talking to devices through adb

    :type adb: ADB
    """

    def __init__(self, log=None, settings=None, adb=None, env=None):
        log = log or LOG
        self.log = log.getChild(self.__class__.__name__)
        self.settings = settings if settings is not None else BetterDict()
        self.env = env or self._get_sdk_environment()
        self.adb = adb or ADB(log=self.log, tool_path=self.settings.get("adb", ""), env=self.env)
        self.avdmanager = AvdManager(log=self.log, tool_path=self.settings.get("avdmanager", ""), env=self.env)
        self.emulator = EmulatorTool(log=self.log, tool_path=self.settings.get("emulator", ""), env=self.env)
        self.sleep = time.sleep
        self.stdout = sys.stdout
        self.emulator_process = None  # detached, never waited for

    def _get_sdk_environment(self):
        env = Environment(self.log)
        sdk_path = self.settings.get("sdk-path", "") or os.environ.get("ANDROID_HOME") or \
            os.environ.get("ANDROID_SDK_ROOT")
        if sdk_path:
            sdk_path = get_full_path(sdk_path)
            self.log.debug("Using Android SDK at %s", sdk_path)
            for tool_dir in reversed(SDK_TOOL_DIRS):
                env.add_path({"PATH": os.path.join(sdk_path, tool_dir)})

        return env

    def list_images_using_avdmanager(self):
        return parse_avd_list(self.avdmanager.list_avd())

    def list_images(self):
        """
        :rtype: list[ImageRecord]
        """
        self.avdmanager.resolve()
        images = self.list_images_using_avdmanager()
        return [image.replace(target=normalize_target(image.target)) for image in images]

    def best_image(self, project_target):
        """
        Closest image to the given API level, preferring older ones

        :type project_target: int
        :rtype: ImageRecord|None
        """
        images = self.list_images()
        if not images:
            return None

        closest = None
        best = images[0]
        for image in images:
            level = image.api_level
            if level is None:
                continue

            if level == project_target:
                return image
            elif project_target > level and (closest is None or project_target - level < closest):
                closest = project_target - level
                best = image

        return best

    def list_started(self):
        return [device for device in self.adb.devices() if device.startswith("emulator-")]

    def get_available_port(self):
        emulators = self.list_started()
        for port in range(LAST_PORT, FIRST_PORT - 1, -2):
            if "emulator-%s" % port not in emulators:
                self.log.debug("Found available port: %s", port)
                return port

        raise NoAvailablePortError("Could not find an available avd port")

    def start(self, emulator_id, boot_timeout=None):
        """
        Start emulator and wait until it boots.
        No boot_timeout or negative one means waiting forever.

        :return: started emulator id or None if boot timed out
        """
        if not emulator_id:
            raise AvdArgumentError("No emulator ID given")

        if boot_timeout is None:
            boot_timeout = -1
        elif isinstance(boot_timeout, bool) or not isinstance(boot_timeout, (int, float)):
            raise AvdArgumentError("Boot timeout must be a number of seconds, got: %r" % (boot_timeout,))

        port = self.get_available_port()
        self.emulator_process = self.emulator.start(emulator_id, port)
        if self.emulator_process is not None:
            self.log.debug("Emulator %s spawned with PID %s", emulator_id, self.emulator_process.pid)

        self.log.info("Waiting for emulator to start...")
        started_id = self.wait_for_emulator(port)
        if not started_id:
            raise ToolError("Failed to start emulator")

        self._write("Waiting for emulator to boot (this may take a while)...")
        if not self.wait_for_boot(started_id, boot_timeout):
            return None

        self.log.info("BOOT COMPLETE")
        self.adb.shell(started_id, "input keyevent 82")  # unlock screen
        return started_id

    def wait_for_emulator(self, port):
        """
        Wait until emulator on given port answers adb at all
        """
        emulator_id = "emulator-%s" % port
        while True:
            try:
                output = self.adb.shell(emulator_id, "getprop dev.bootcomplete")
            except AdbError as exc:
                if not is_transient(exc):
                    raise
                self.log.debug("Emulator %s isn't ready yet: %s", emulator_id, exc)
                continue

            if "1" in output:
                return emulator_id

    def wait_for_boot(self, emulator_id, time_remaining=-1):
        """
        Wait for core android process to start.
        Negative time_remaining means waiting forever.

        :rtype: bool
        """
        while True:
            output = self.adb.shell(emulator_id, "getprop sys.boot_completed")
            if "1" in output:
                return True
            elif time_remaining == 0:
                return False

            self._write(".")
            if time_remaining < 0:
                delay = CHECK_BOOTED_INTERVAL
            else:
                delay = min(time_remaining, CHECK_BOOTED_INTERVAL)

            self.sleep(delay)
            if time_remaining >= 0:
                time_remaining = max(time_remaining - delay, 0)

    def _write(self, text):
        self.stdout.write(text)
        self.stdout.flush()
