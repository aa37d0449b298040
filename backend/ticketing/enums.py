"""
枚举类型定义模块

定义出票流程中使用的所有枚举类型。
所有枚举都继承自 str 和 Enum，这样既可以用作字符串（日志、JSON 响应、数据库字段），
又具有枚举的特性。
"""
from enum import Enum  # 枚举类型，用于定义固定的选项集合


class LedgerOutcome(str, Enum):
    """
    购买记录写入结果

    - recorded: 首次写入成功
    - duplicate: 该支付流水号已存在（webhook 重投递，属正常情况）
    - failed: 其他持久化失败（连接、校验等），出票仍会尽力进行
    """
    recorded = "recorded"
    duplicate = "duplicate"
    failed = "failed"


class FulfillmentState(str, Enum):
    """
    单个 webhook 事件的终态

    - rejected: 签名校验失败（401）
    - malformed: 签名通过但事件结构非法（400）
    - ignored: 非支付成功事件，确认收到但不处理
    - already_processed: 该流水号已处理过，不再出票
    - acknowledged: 已进入出票流程并完成（无论单张票成败）
    """
    rejected = "rejected"
    malformed = "malformed"
    ignored = "ignored"
    already_processed = "already_processed"
    acknowledged = "acknowledged"


class UnitStatus(str, Enum):
    """
    单张票的处理结果

    - sent: 已生成并发送邮件
    - asset_failed: 底图缺失或损坏
    - render_failed: 二维码或合成图片失败
    - dispatch_failed: 邮件发送失败
    - error: 其他未预期错误
    """
    sent = "sent"
    asset_failed = "asset_failed"
    render_failed = "render_failed"
    dispatch_failed = "dispatch_failed"
    error = "error"
