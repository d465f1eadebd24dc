"""服务层异常

服务方法直接抛出这些异常，由路由层统一转换为 ApiResponse(success=False)。
异常消息面向最终用户展示。
"""


class ServiceError(Exception):
    """服务层异常基类"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class NotFoundError(ServiceError):
    """引用的记录不存在"""
    pass


class ValidationError(ServiceError):
    """输入不合法，在任何写入之前拒绝"""
    pass


class ConflictError(ServiceError):
    """操作与现有数据冲突（如模板仍被项目使用）"""

    def __init__(self, message: str, projects: list | None = None):
        super().__init__(message)
        self.projects = projects or []


class ManifestError(ValidationError):
    """导出包清单缺失、格式错误或版本不受支持"""
    pass
