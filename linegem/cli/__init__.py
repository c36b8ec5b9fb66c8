"""linegem 命令行接口。"""
