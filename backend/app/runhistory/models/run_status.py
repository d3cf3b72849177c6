"""Run / Test 状态枚举定义

磁盘上的取值与原 Playwright 报告保持一致（passed / failed / skipped / timedOut），
历史文件可在两套实现之间互读。
"""

from enum import Enum


class TestStatus(str, Enum):
    """单个测试用例的终态

    状态只赋值一次，不存在中间态。
    """
    __test__ = False  # 避免被 pytest 当成测试类收集

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    TIMED_OUT = "timedOut"

    @classmethod
    def failing_states(cls) -> set[str]:
        """会把整次 Run 判为 failed 的状态集合"""
        return {cls.FAILED.value, cls.TIMED_OUT.value}

    def is_failure(self) -> bool:
        """是否为失败态"""
        return self.value in self.failing_states()


class RunStatus(str, Enum):
    """Run 状态枚举

    状态流转:
        PASSED → FAILED（单向锁存，不会回退）
    """
    PASSED = "passed"
    FAILED = "failed"


__all__ = [
    "TestStatus",
    "RunStatus",
]
