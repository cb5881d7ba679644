# Core modules for qonvert
