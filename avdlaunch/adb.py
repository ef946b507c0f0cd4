"""
Device bridge: thin wrapper around `adb` binary

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
from subprocess import CalledProcessError

from avdlaunch import AdbError
from avdlaunch.utils import RequiredTool


class ADB(RequiredTool):
    TOOL_NAME = "adb"

    def devices(self):
        """
        Serials of all devices known to adb, whatever state they are in

        :rtype: list[str]
        """
        out, _ = self.call([self.resolve(), "devices"])
        return self.parse_devices(out)

    @staticmethod
    def parse_devices(output):
        devices = []
        for line in output.splitlines():
            line = line.strip()
            if not line or line.startswith("List of devices") or line.startswith("*"):
                continue

            parts = line.split()
            if len(parts) >= 2:
                devices.append(parts[0])

        return devices

    def shell(self, device_id, command):
        """
        Run shell command on device, return its stdout

        :type device_id: str
        :type command: str
        :rtype: str
        """
        cmd = [self.resolve(), "-s", device_id, "shell", command]
        self.log.debug("Running on %s: %s", device_id, command)
        try:
            out, _ = self.call(cmd)
        except CalledProcessError as exc:
            msg = 'Failed to execute shell command "%s" on device %s: exit code %s' % (command, device_id,
                                                                                   exc.returncode)
            diagnostics = [line for line in (exc.output or "").splitlines() if line.strip()]
            raise AdbError(msg, diagnostics)
        except OSError as exc:
            msg = 'Failed to execute shell command "%s" on device %s: %s' % (command, device_id, exc)
            raise AdbError(msg)

        return out
