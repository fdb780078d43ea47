# Generated manually
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='auditlog',
            name='action',
            field=models.CharField(choices=[('create', 'Create'), ('update', 'Update'), ('delete', 'Delete'), ('view', 'View'), ('export', 'Export'), ('login', 'Login'), ('rate_change', 'Rate Change'), ('plan_submit', 'Plan Submitted'), ('plan_approve', 'Plan Approved'), ('plan_reject', 'Plan Rejected'), ('plan_convert', 'Plan Converted'), ('campaign_status', 'Campaign Status Changed'), ('asset_book', 'Asset Booked'), ('asset_release', 'Asset Released'), ('mounter_assign', 'Mounter Assigned'), ('proof_upload', 'Proof Uploaded'), ('proof_review', 'Proof Reviewed'), ('invoice_create', 'Invoice Created'), ('invoice_send', 'Invoice Sent'), ('invoice_cancel', 'Invoice Cancelled'), ('payment_add', 'Payment Added'), ('credit_note_create', 'Credit Note Created'), ('credit_note_issue', 'Credit Note Issued'), ('credit_note_cancel', 'Credit Note Cancelled'), ('expense_create', 'Expense Created'), ('power_bill_add', 'Power Bill Added'), ('power_bill_paid', 'Power Bill Paid'), ('member_invite', 'Member Invited'), ('member_update', 'Member Updated'), ('member_remove', 'Member Removed'), ('company_status', 'Company Status Changed')], max_length=50),
        ),
    ]
