from . import admin, support, tasks, users, withdrawals

routers = [users.router, tasks.router, withdrawals.router, support.router, admin.router]
