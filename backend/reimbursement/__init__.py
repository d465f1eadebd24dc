"""报销材料管理后端"""
