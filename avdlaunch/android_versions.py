"""
Android platform versions and their API levels

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
from collections import namedtuple

AndroidVersion = namedtuple("AndroidVersion", "api,semver,name")

# See: https://developer.android.com/guide/topics/manifest/uses-sdk-element#ApiLevels
VERSIONS = [
    AndroidVersion(14, "4.0", "ICE_CREAM_SANDWICH"),
    AndroidVersion(15, "4.0.3", "ICE_CREAM_SANDWICH_MR1"),
    AndroidVersion(16, "4.1", "JELLY_BEAN"),
    AndroidVersion(17, "4.2", "JELLY_BEAN_MR1"),
    AndroidVersion(18, "4.3", "JELLY_BEAN_MR2"),
    AndroidVersion(19, "4.4", "KITKAT"),
    AndroidVersion(20, "4.4W", "KITKAT_WATCH"),
    AndroidVersion(21, "5.0", "LOLLIPOP"),
    AndroidVersion(22, "5.1", "LOLLIPOP_MR1"),
    AndroidVersion(23, "6.0", "M"),
    AndroidVersion(24, "7.0", "N"),
    AndroidVersion(25, "7.1.1", "N_MR1"),
    AndroidVersion(26, "8.0", "O"),
    AndroidVersion(27, "8.1", "O_MR1"),
    AndroidVersion(28, "9", "P"),
    AndroidVersion(29, "10", "Q"),
    AndroidVersion(30, "11", "R"),
    AndroidVersion(31, "12", "S"),
    AndroidVersion(32, "12L", "S_V2"),
    AndroidVersion(33, "13", "TIRAMISU"),
    AndroidVersion(34, "14", "UPSIDE_DOWN_CAKE"),
    AndroidVersion(35, "15", "VANILLA_ICE_CREAM"),
    AndroidVersion(36, "16", "BAKLAVA"),
]

API_LEVELS = {version.api: version for version in VERSIONS}

VERSION_STRING_TO_API_LEVEL = {version.semver: version.api for version in VERSIONS}
# avdmanager prints "Android 10.0" for the same platforms
VERSION_STRING_TO_API_LEVEL.update({
    "7.1": 25,
    "9.0": 28,
    "10.0": 29,
    "11.0": 30,
    "12.0": 31,
    "13.0": 33,
    "14.0": 34,
    "15.0": 35,
    "16.0": 36,
})


def get(api_level):
    """
    Look up platform version by API level

    :type api_level: int|str
    :rtype: AndroidVersion|None
    """
    try:
        return API_LEVELS.get(int(api_level))
    except (TypeError, ValueError):
        return None


def version_string_to_api_level(version_string):
    """
    :type version_string: str
    :rtype: int|None
    """
    return VERSION_STRING_TO_API_LEVEL.get(version_string.strip())
