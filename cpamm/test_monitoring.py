"""
Tests for the Prometheus metrics wrapper.
"""
import unittest
import urllib.request

from cpamm.monitoring import PoolMetrics
from cpamm.pool_state import PoolConfig


class TestPoolMetrics(unittest.TestCase):
    def setUp(self):
        self.metrics = PoolMetrics()

    def tearDown(self):
        self.metrics.stop()

    def test_record_operation(self):
        self.metrics.record_operation("swap", "success", 0.01)
        self.metrics.record_operation("swap", "success", 0.02)
        self.metrics.record_operation("swap", "failure", 0.01)
        self.assertEqual(self.metrics.get_sample('amm_operations_total', {'operation': 'swap', 'status': 'success'}), 2)
        self.assertEqual(self.metrics.get_sample('amm_operations_total', {'operation': 'swap', 'status': 'failure'}), 1)
        self.assertEqual(self.metrics.get_sample('amm_operation_latency_seconds_count', {'operation': 'swap'}), 3)

    def test_update_pool(self):
        pool = PoolConfig(dict(
            seed=1, asset_x=b'\x01' * 20, asset_y=b'\x02' * 20, fee=30,
            lp_supply=1000, reserve_x=400, reserve_y=900,
        ))
        self.metrics.update_pool(pool)
        labels = {'pool': pool.address.hex()}
        self.assertEqual(self.metrics.get_sample('amm_reserve_x', labels), 400)
        self.assertEqual(self.metrics.get_sample('amm_reserve_y', labels), 900)
        self.assertEqual(self.metrics.get_sample('amm_invariant_k', labels), 360000)

    def test_update_system(self):
        self.metrics.update_system()
        self.assertIsNotNone(self.metrics.get_sample('system_memory_percent'))

    def test_serve_exposes_registry(self):
        self.metrics.record_invariant_violation()
        self.metrics.serve(port=0)
        port = self.metrics.server.server_port
        body = urllib.request.urlopen(f"http://127.0.0.1:{port}/metrics", timeout=5).read().decode()
        self.assertIn('amm_invariant_violations_total 1.0', body)


if __name__ == '__main__':
    unittest.main()
