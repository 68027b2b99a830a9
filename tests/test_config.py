"""
QDX Configuration Tests
=======================

Test Coverage:
- Defaults
- Loading from JSON, unknown keys ignored with a warning
- Missing file / invalid JSON raise after logging
- Non-object files and wrongly typed values raise ValueError
"""

import json
import os
import tempfile
import unittest

from qdx_reader.config import ScannerConfig, load_config


class TestScannerConfig(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def _write(self, content: str) -> str:
        path = os.path.join(self.tmp.name, 'config.json')
        with open(path, 'w') as f:
            f.write(content)
        return path

    def test_defaults(self):
        config = ScannerConfig()
        self.assertTrue(config.loyalty_card_required)
        self.assertFalse(config.debug)
        self.assertFalse(config.enable_coupons)
        self.assertIsNone(config.raw_record_hook)
        self.assertEqual(config.delimiter, '|')

    def test_load(self):
        path = self._write(json.dumps({
            'loyalty_card_required': False,
            'enable_coupons': True,
            'delimiter': ',',
        }))
        config = load_config(path)
        self.assertFalse(config.loyalty_card_required)
        self.assertTrue(config.enable_coupons)
        self.assertEqual(config.delimiter, ',')
        self.assertFalse(config.debug)

    def test_unknown_keys_ignored(self):
        path = self._write(json.dumps({'debug': True, 'raw_record_hook': 'x', 'colour': 'red'}))
        with self.assertLogs('qdx_reader.config', level='WARNING') as logs:
            config = load_config(path)
        self.assertTrue(config.debug)
        self.assertIsNone(config.raw_record_hook)
        self.assertEqual(len([line for line in logs.output if 'WARNING' in line]), 2)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_config(os.path.join(self.tmp.name, 'nope.json'))

    def test_invalid_json(self):
        path = self._write('{not json')
        with self.assertRaises(json.JSONDecodeError):
            load_config(path)

    def test_string_flag_rejected(self):
        """A quoted "false" is a string, not a boolean."""
        path = self._write(json.dumps({'loyalty_card_required': 'false'}))
        with self.assertLogs('qdx_reader.config', level='ERROR'):
            with self.assertRaises(ValueError):
                load_config(path)

    def test_wrong_type_delimiter_rejected(self):
        path = self._write(json.dumps({'delimiter': 0}))
        with self.assertRaises(ValueError):
            load_config(path)

    def test_null_output_dir_accepted(self):
        config = load_config(self._write(json.dumps({'output_dir': None})))
        self.assertIsNone(config.output_dir)

    def test_top_level_array_rejected(self):
        path = self._write(json.dumps([{'debug': True}]))
        with self.assertLogs('qdx_reader.config', level='ERROR'):
            with self.assertRaises(ValueError):
                load_config(path)


if __name__ == '__main__':
    unittest.main(verbosity=2)
