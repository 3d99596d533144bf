"""Built-in Terraform template variants.

Each body holds exactly one ``terraform`` block (with its backend) and one
``provider`` block. String placeholders always sit inside double quotes and
numeric placeholders always sit bare. Placeholders inside heredoc scripts
are base64-encoded with the ``b64`` filter. The registry enforces all of this
on load.

A line consisting only of ``{# fragment: <slot> #}`` marks where a
conditional fragment is spliced.
"""

from tfportal.interfaces.template import ConditionalFragment, TemplateVariant
from tfportal.strategies.template_engine.models import Provider, Topology

BOOTSTRAP_FLAG = "install_bootstrap_script"

# Installs nginx and publishes a landing page naming the server. The name
# travels as base64 so the shell never interprets it.
BOOTSTRAP_SCRIPT = """\
#!/bin/bash
apt-get update -y
apt-get install -y nginx
{ printf '<h1>'; echo '{{ resource_name | b64 }}' | base64 -d; printf '</h1>\\n'; } > /var/www/html/index.html
systemctl enable --now nginx
"""


def _heredoc(attribute: str, script: str, encode: bool = False) -> str:
    lines = [f"  {line}" if line else "" for line in script.splitlines()]
    body = "\n".join(lines)
    if encode:
        return f"{attribute} = base64encode(<<-EOF\n{body}\n  EOF\n)\n"
    return f"{attribute} = <<-EOF\n{body}\n  EOF\n"


AWS_SECURITY_GROUP = """\
resource "aws_security_group" "user_custom_sg" {
  name        = "{{ security_group_name }}"
  description = "Security Group managed by Terraform Web Portal"
  vpc_id      = data.aws_vpc.default.id

  ingress {
    description = "HTTP"
    from_port   = 80
    to_port     = 80
    protocol    = "tcp"
    cidr_blocks = ["0.0.0.0/0"]
  }

  ingress {
    description = "SSH"
    from_port   = 22
    to_port     = 22
    protocol    = "tcp"
    cidr_blocks = ["0.0.0.0/0"]
  }

  egress {
    from_port   = 0
    to_port     = 0
    protocol    = "-1"
    cidr_blocks = ["0.0.0.0/0"]
  }

  tags = {
    Name = "{{ security_group_name }}"
  }
}
"""

AWS_PREAMBLE = """\
terraform {
  required_providers {
    aws = {
      source  = "hashicorp/aws"
      version = "~> 5.0"
    }
  }

  backend "s3" {
    bucket = "{{ state_bucket }}"
    key    = "{{ state_key }}"
    region = "{{ region }}"
  }
}

provider "aws" {
  region = "{{ region }}"
}

data "aws_vpc" "default" {
  default = true
}

resource "aws_subnet" "user_selected_subnet" {
  vpc_id            = data.aws_vpc.default.id
  cidr_block        = "{{ subnet_cidr }}"
  availability_zone = "{{ region }}a"

  tags = {
    Name = "Subnet-For-{{ resource_name }}"
  }
}
"""

AWS_SINGLE_INSTANCE = (
    AWS_PREAMBLE
    + "\n"
    + AWS_SECURITY_GROUP
    + """
resource "aws_instance" "web_server" {
  ami           = "{{ aws_ami }}"
  instance_type = "{{ instance_size }}"

  subnet_id                   = aws_subnet.user_selected_subnet.id
  vpc_security_group_ids      = [aws_security_group.user_custom_sg.id]
  associate_public_ip_address = true
  {# fragment: user_data #}

  tags = {
    Name    = "{{ resource_name }}"
    Project = "Cloud-Automation-Web-Generated"
  }
}
"""
)

AWS_HA_CLUSTER = (
    AWS_PREAMBLE
    + """
data "aws_subnet" "secondary" {
  vpc_id            = data.aws_vpc.default.id
  availability_zone = "{{ region }}b"
  default_for_az    = true
}

"""
    + AWS_SECURITY_GROUP
    + """
resource "aws_lb" "web" {
  name               = "{{ resource_name }}-alb"
  internal           = false
  load_balancer_type = "application"
  security_groups    = [aws_security_group.user_custom_sg.id]
  subnets            = [aws_subnet.user_selected_subnet.id, data.aws_subnet.secondary.id]

  tags = {
    Name = "{{ resource_name }}-alb"
  }
}

resource "aws_lb_target_group" "web" {
  name     = "{{ resource_name }}-tg"
  port     = 80
  protocol = "HTTP"
  vpc_id   = data.aws_vpc.default.id

  health_check {
    path    = "/"
    matcher = "200-399"
  }
}

resource "aws_lb_listener" "http" {
  load_balancer_arn = aws_lb.web.arn
  port              = 80
  protocol          = "HTTP"

  default_action {
    type             = "forward"
    target_group_arn = aws_lb_target_group.web.arn
  }
}

resource "aws_launch_template" "web" {
  name_prefix   = "{{ resource_name }}-"
  image_id      = "{{ aws_ami }}"
  instance_type = "{{ instance_size }}"

  network_interfaces {
    associate_public_ip_address = true
    security_groups             = [aws_security_group.user_custom_sg.id]
  }
  {# fragment: user_data #}

  tag_specifications {
    resource_type = "instance"

    tags = {
      Name    = "{{ resource_name }}"
      Project = "Cloud-Automation-Web-Generated"
    }
  }
}

resource "aws_autoscaling_group" "web" {
  name                = "{{ resource_name }}-asg"
  min_size            = {{ capacity }}
  max_size            = {{ max_capacity }}
  desired_capacity    = {{ capacity }}
  vpc_zone_identifier = [aws_subnet.user_selected_subnet.id, data.aws_subnet.secondary.id]
  target_group_arns   = [aws_lb_target_group.web.arn]
  health_check_type   = "ELB"

  launch_template {
    id      = aws_launch_template.web.id
    version = "$Latest"
  }

  tag {
    key                 = "Name"
    value               = "{{ resource_name }}"
    propagate_at_launch = true
  }
}
"""
)

AZURE_SINGLE_INSTANCE = """\
terraform {
  required_providers {
    azurerm = {
      source  = "hashicorp/azurerm"
      version = "~> 3.0"
    }
  }

  backend "azurerm" {
    resource_group_name  = "{{ azure_state_resource_group }}"
    storage_account_name = "{{ azure_state_storage_account }}"
    container_name       = "{{ azure_state_container }}"
    key                  = "{{ state_key }}"
  }
}

provider "azurerm" {
  features {}
}

resource "azurerm_resource_group" "main" {
  name     = "{{ resource_name }}-rg"
  location = "{{ region }}"
}

resource "azurerm_virtual_network" "main" {
  name                = "{{ resource_name }}-vnet"
  address_space       = ["{{ subnet_cidr }}"]
  location            = azurerm_resource_group.main.location
  resource_group_name = azurerm_resource_group.main.name
}

resource "azurerm_subnet" "user_selected_subnet" {
  name                 = "Subnet-For-{{ resource_name }}"
  resource_group_name  = azurerm_resource_group.main.name
  virtual_network_name = azurerm_virtual_network.main.name
  address_prefixes     = ["{{ subnet_cidr }}"]
}

resource "azurerm_network_security_group" "user_custom_sg" {
  name                = "{{ security_group_name }}"
  location            = azurerm_resource_group.main.location
  resource_group_name = azurerm_resource_group.main.name

  security_rule {
    name                       = "HTTP"
    priority                   = 100
    direction                  = "Inbound"
    access                     = "Allow"
    protocol                   = "Tcp"
    source_port_range          = "*"
    destination_port_range     = "80"
    source_address_prefix      = "*"
    destination_address_prefix = "*"
  }

  security_rule {
    name                       = "SSH"
    priority                   = 110
    direction                  = "Inbound"
    access                     = "Allow"
    protocol                   = "Tcp"
    source_port_range          = "*"
    destination_port_range     = "22"
    source_address_prefix      = "*"
    destination_address_prefix = "*"
  }
}

resource "azurerm_subnet_network_security_group_association" "main" {
  subnet_id                 = azurerm_subnet.user_selected_subnet.id
  network_security_group_id = azurerm_network_security_group.user_custom_sg.id
}

resource "azurerm_public_ip" "main" {
  name                = "{{ resource_name }}-ip"
  location            = azurerm_resource_group.main.location
  resource_group_name = azurerm_resource_group.main.name
  allocation_method   = "Static"
  sku                 = "Standard"
}

resource "azurerm_network_interface" "main" {
  name                = "{{ resource_name }}-nic"
  location            = azurerm_resource_group.main.location
  resource_group_name = azurerm_resource_group.main.name

  ip_configuration {
    name                          = "internal"
    subnet_id                     = azurerm_subnet.user_selected_subnet.id
    private_ip_address_allocation = "Dynamic"
    public_ip_address_id          = azurerm_public_ip.main.id
  }
}

resource "azurerm_linux_virtual_machine" "web_server" {
  name                  = "{{ resource_name }}"
  resource_group_name   = azurerm_resource_group.main.name
  location              = azurerm_resource_group.main.location
  size                  = "{{ instance_size }}"
  admin_username        = "azureuser"
  network_interface_ids = [azurerm_network_interface.main.id]

  admin_ssh_key {
    username   = "azureuser"
    public_key = file("~/.ssh/id_rsa.pub")
  }

  os_disk {
    caching              = "ReadWrite"
    storage_account_type = "Standard_LRS"
  }

  source_image_reference {
    publisher = "Canonical"
    offer     = "0001-com-ubuntu-server-jammy"
    sku       = "22_04-lts"
    version   = "latest"
  }
  {# fragment: custom_data #}

  tags = {
    Name    = "{{ resource_name }}"
    Project = "Cloud-Automation-Web-Generated"
  }
}
"""


BUILTIN_VARIANTS: tuple[TemplateVariant, ...] = (
    TemplateVariant(
        provider=Provider.AWS.value,
        topology=Topology.SINGLE_INSTANCE.value,
        body=AWS_SINGLE_INSTANCE,
        fragments=(
            ConditionalFragment(
                slot="user_data",
                flag=BOOTSTRAP_FLAG,
                source=_heredoc("user_data", BOOTSTRAP_SCRIPT),
            ),
        ),
        description="Single EC2 instance in a dedicated subnet",
    ),
    TemplateVariant(
        provider=Provider.AWS.value,
        topology=Topology.HA_CLUSTER.value,
        body=AWS_HA_CLUSTER,
        fragments=(
            ConditionalFragment(
                slot="user_data",
                flag=BOOTSTRAP_FLAG,
                source=_heredoc("user_data", BOOTSTRAP_SCRIPT, encode=True),
            ),
        ),
        description="Autoscaling group behind an application load balancer",
    ),
    TemplateVariant(
        provider=Provider.AZURE.value,
        topology=Topology.SINGLE_INSTANCE.value,
        body=AZURE_SINGLE_INSTANCE,
        fragments=(
            ConditionalFragment(
                slot="custom_data",
                flag=BOOTSTRAP_FLAG,
                source=_heredoc("custom_data", BOOTSTRAP_SCRIPT, encode=True),
            ),
        ),
        description="Single Linux VM in its own resource group",
    ),
)
