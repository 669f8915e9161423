"""
集中定义所有路由的授权规则

每条规则 = 允许的角色集合 + Staff 角色需具备的任务分工（可选）。
路由通过 require(RULE) 引用，不再各自实现角色检查。
"""
from app.models.ontology import Role, Task
from app.security.policy import AuthorizationRule

_O, _A, _S = Role.OWNER, Role.ADMIN, Role.STAFF

# 客人自助
GUEST_SELF = AuthorizationRule.of(Role.GUEST)

# 任意员工（个人资料等）
ANY_STAFF = AuthorizationRule.of(_O, _A, _S)

# 账号管理（目标角色另由 can_manage 判定）
STAFF_MANAGE = AuthorizationRule.of(_O, _A)

# 仪表盘
DASHBOARD_VIEW = AuthorizationRule.of(_O, _A)

# 客房
ROOM_CATALOG = AuthorizationRule.of(_O, _A)
ROOM_OPERATE = AuthorizationRule.of(_O, _A, _S, task=Task.ROOM)

# 房间预订
BOOKING_MANAGE = AuthorizationRule.of(_O, _A, _S, task=Task.BOOKING)

# 餐饮
DISH_MANAGE = AuthorizationRule.of(_O, _A, _S, task=Task.DISH)
ORDER_MANAGE = AuthorizationRule.of(_O, _A, _S, task=Task.ORDER)

# 洗衣
LAUNDRY_VIEW = AuthorizationRule.of(_O, _A, _S, task=Task.LAUNDRY)
LAUNDRY_CATALOG = AuthorizationRule.of(_O, _A, task=Task.LAUNDRY)
LAUNDRY_ADMIN = AuthorizationRule.of(_O, _A, task=Task.LAUNDRY)

# 库存与供应商
INVENTORY_MANAGE = AuthorizationRule.of(_O, _A, _S, task=Task.INVENTORY)

# 会场：查看对具备 hall 任务的员工开放，维护与预订仅 Owner/Admin
HALL_VIEW = AuthorizationRule.of(_O, _A, _S, task=Task.HALL)
HALL_MANAGE = AuthorizationRule.of(_O, _A)

# 活动预约
EVENT_MANAGE = AuthorizationRule.of(_O, _A, _S, task=Task.EVENT)
EVENT_ADMIN = AuthorizationRule.of(_O, _A)

# 客人账号管理
GUEST_ADMIN = AuthorizationRule.of(_O, _A, _S, task=Task.GUEST)
GUEST_EXPORT = AuthorizationRule.of(_O, _A)

# 酒店服务与服务请求
SERVICE_CATALOG = AuthorizationRule.of(_O, _A)
SERVICE_REQUEST_MANAGE = AuthorizationRule.of(_O, _A, _S, task=Task.SERVICE_REQUEST)
