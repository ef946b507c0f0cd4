"""
Configuration loading and command-line overrides

Copyright 2019 BlazeMeter Inc.

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
import codecs
import json
import logging
import os
import traceback

import yaml

from avdlaunch import AvdConfigError
from avdlaunch.utils import BetterDict, is_int, RESOURCES_DIR

ANDROID = "android"
BASE_CONFIG = os.path.join(RESOURCES_DIR, "base-config.yml")
USER_CONFIG = "~/.avdlaunch-rc"


class Configuration(BetterDict):
    """
    loading both JSONs and YAMLs and .properties-like override
    """

    def __init__(self, *args, **kwargs):
        super(Configuration, self).__init__(*args, **kwargs)
        self.log = logging.getLogger('')

    def load(self, config_files):
        """
        Load and merge JSON/YAML files into current dict

        :type config_files: list[str]
        """
        self.log.debug("Configs: %s", config_files)
        for config_file in config_files:
            try:
                configs = []
                with codecs.open(config_file, 'r', encoding='utf-8') as fds:
                    self._read_yaml_or_json(config_file, configs, fds.read())

                for config in configs:
                    self.merge(config)

            except KeyboardInterrupt:
                raise
            except AvdConfigError:
                raise
            except BaseException as exc:
                raise AvdConfigError("Error when reading config file '%s': %s" % (config_file, exc))

    def _read_yaml_or_json(self, config_file, configs, contents):
        try:
            self.log.debug("Reading %s as YAML", config_file)
            for doc in yaml.safe_load_all(contents):
                if doc is None:
                    continue
                if not isinstance(doc, dict):
                    raise AvdConfigError("Configuration %s is invalid" % config_file)
                configs.append(doc)
        except AvdConfigError:
            raise
        except yaml.YAMLError as yaml_load_exc:
            self.log.debug("Cannot read config file as YAML '%s': %s", config_file, yaml_load_exc)
            if contents.lstrip().startswith('{'):
                self.log.debug("Reading %s as JSON", config_file)
                config_value = json.loads(contents)
                if not isinstance(config_value, dict):
                    raise AvdConfigError("Configuration %s is invalid" % config_file)
                configs.append(config_value)
            else:
                raise

    def dump(self):
        return yaml.safe_dump(json.loads(json.dumps(self)), default_flow_style=False)


class ConfigOverrider(object):
    def __init__(self, logger):
        """
        :type logger: logging.Logger
        """
        super(ConfigOverrider, self).__init__()
        self.log = logger.getChild(self.__class__.__name__)

    def apply_overrides(self, options, dest):
        """
        Apply overrides
        :type options: list[str]
        :type dest: Configuration
        """
        for option in options:
            if '=' not in option:
                raise AvdConfigError("Override must be in form of path.to.key=value: %s" % option)

            name = option[:option.index('=')]
            value = option[option.index('=') + 1:]
            try:
                self.__apply_single_override(dest, name, value)
            except BaseException:
                self.log.debug("Failed override: %s", traceback.format_exc())
                self.log.error("Failed to apply override %s=%s", name, value)
                raise

    def __apply_single_override(self, dest, name, value):
        """
        Apply single override
        :type name: str
        :type value: str
        """
        self.log.debug("Applying %s=%s", name, value)
        parts = [(int(x) if is_int(x) else x) for x in name.split(".")]
        pointer = dest
        for part in parts[:-1]:
            if isinstance(pointer, list):
                pointer = pointer[part]
            else:
                pointer = pointer.get(part, force_set=True)

        if isinstance(parts[-1], str) and parts[-1][0] == '^':
            item = parts[-1][1:]
            if item in pointer:
                del pointer[item]
            else:
                self.log.debug("No value to delete: %s", item)
            return

        parsed_value = self.__parse_override_value(value)
        self.log.debug("Parsed override value: %r -> %r (%s)", value, parsed_value, type(parsed_value))
        if isinstance(parsed_value, dict):
            parsed_value = BetterDict.from_dict(parsed_value)
        pointer[parts[-1]] = parsed_value

    @staticmethod
    def __parse_override_value(override):
        try:
            return yaml.safe_load(override)
        except yaml.YAMLError:
            return override


def load_configuration(config_files, overrides=None, system_configs=True):
    """
    Base config, then user config, then given files, then overrides

    :rtype: Configuration
    """
    config = Configuration()
    files = [BASE_CONFIG]
    user_config = os.path.expanduser(USER_CONFIG)
    if system_configs and os.path.isfile(user_config):
        files.append(user_config)

    config.load(files + list(config_files))
    if overrides:
        ConfigOverrider(config.log).apply_overrides(overrides, config)

    config.get(ANDROID, force_set=True)
    return config
