"""Closed vocabularies for roles, modules, statuses and history actions."""
import enum


class Role(str, enum.Enum):
    Admin = "Admin"
    ProjectManager = "ProjectManager"
    PurchaseOfficer = "PurchaseOfficer"
    SiteEngineer = "SiteEngineer"
    Accountant = "Accountant"
    Approver = "Approver"
    Viewer = "Viewer"


class Module(str, enum.Enum):
    Purchase = "Purchase"
    Contracts = "Contracts"
    Accounts = "Accounts"
    Site = "Site"
    Engineering = "Engineering"
    Inventory = "Inventory"


class DocumentStatus(str, enum.Enum):
    Draft = "Draft"
    Pending = "Pending"
    Approved = "Approved"
    Rejected = "Rejected"
    Cancelled = "Cancelled"


class ApprovalStatus(str, enum.Enum):
    Pending = "Pending"
    Approved = "Approved"
    Rejected = "Rejected"


class HistoryAction(str, enum.Enum):
    Submitted = "Submitted"
    Approved = "Approved"
    Rejected = "Rejected"
    Escalated = "Escalated"
