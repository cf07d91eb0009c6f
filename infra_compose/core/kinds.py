"""Resource kinds understood by the composers and the CDK renderer."""

IAM_ROLE = "AWS::IAM::Role"
IAM_MANAGED_POLICY = "AWS::IAM::ManagedPolicy"
# No CloudFormation resource of its own; renderers fold it into the policy.
IAM_ROLE_POLICY_ATTACHMENT = "IAM::RolePolicyAttachment"

LAMBDA_FUNCTION = "AWS::Lambda::Function"
LAMBDA_VERSION = "AWS::Lambda::Version"
LAMBDA_ALIAS = "AWS::Lambda::Alias"
LAMBDA_EVENT_SOURCE_MAPPING = "AWS::Lambda::EventSourceMapping"

LOG_GROUP = "AWS::Logs::LogGroup"
S3_BUCKET = "AWS::S3::Bucket"
SQS_QUEUE = "AWS::SQS::Queue"

ROUTE53_HOSTED_ZONE = "AWS::Route53::HostedZone"
ROUTE53_RECORD_SET = "AWS::Route53::RecordSet"
